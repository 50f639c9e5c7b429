import json

import pytest

from trec_ranking.cli import main
from trec_ranking.index import Index


@pytest.fixture
def collection(tmp_path):
    records = [
        {"docno": "LA-0001", "headline": "Storm hits coast", "text": "A storm hit the coast."},
        {"docno": "LA-0002", "headline": "Markets", "text": "Stock markets rallied today."},
        {"docno": "LA-0003", "headline": "Storm warning", "text": "Forecasters warn of storms."},
        {"docno": "LA-0004", "headline": "Election", "text": "Voters went to the polls."},
        {"docno": "LA-0005", "headline": "Bridge", "text": "A new bridge opened."},
    ]
    docs = tmp_path / "docs.jsonl"
    docs.write_text("".join(json.dumps(r) + "\n" for r in records))
    queries = tmp_path / "queries.txt"
    queries.write_text("401\nstorm coast\n402\nstock markets\n")
    qrels = tmp_path / "qrels.txt"
    qrels.write_text("401 0 LA-0001 1\n401 0 LA-0003 1\n402 0 LA-0002 1\n402 0 LA-0004 0\n")
    return tmp_path


def test_index_search_evaluate(collection):
    index_dir = collection / "index"
    run = collection / "run.txt"
    report = collection / "output.txt"

    assert main(["--quiet", "index", str(collection / "docs.jsonl"), str(index_dir), "--stem"]) == 0
    assert Index.load(index_dir).stem is True

    assert main(["--quiet", "search", str(index_dir), str(collection / "queries.txt"), str(run)]) == 0
    lines = run.read_text().splitlines()
    assert lines
    assert all(line.split()[1] == "Q0" and line.split()[5] == "BM25" for line in lines)
    assert lines[0].split()[:4] == ["401", "Q0", "LA-0001", "1"]

    qrels = str(collection / "qrels.txt")
    assert main(["--quiet", "evaluate", str(run), qrels, "--output", str(report)]) == 0
    metrics = [line.split()[0] for line in report.read_text().splitlines()]
    assert metrics == [m for m in ("ap", "ndcg_cut_10", "ndcg_cut_1000", "P_10") for _ in range(2)]


def test_search_run_tag_and_top_k(collection):
    index_dir = collection / "index"
    run = collection / "run.txt"
    main(["--quiet", "index", str(collection / "docs.jsonl"), str(index_dir)])
    args = ["--quiet", "search", str(index_dir), str(collection / "queries.txt"), str(run)]
    assert main(args + ["--run-tag", "myrun", "--top-k", "1"]) == 0
    lines = run.read_text().splitlines()
    assert [line.split()[0] for line in lines] == ["401", "402"]
    assert all(line.endswith(" myrun") for line in lines)


def test_evaluate_to_stdout(collection, capsys):
    run = collection / "run.txt"
    run.write_text("401 Q0 LA-0001 1 2.0 r\n401 Q0 LA-0003 2 1.0 r\n")
    assert main(["--quiet", "evaluate", str(run), str(collection / "qrels.txt")]) == 0
    out = capsys.readouterr().out
    assert "ap 401 1.0000\n" in out
    assert "P_10 402 0.0000\n" in out


def test_malformed_input_returns_error(collection, capsys):
    bad = collection / "bad_queries.txt"
    bad.write_text("401\nstorm\n402\n")
    main(["--quiet", "index", str(collection / "docs.jsonl"), str(collection / "index")])
    code = main(["--quiet", "search", str(collection / "index"), str(bad), str(collection / "run.txt")])
    assert code == 1
    assert "Error:" in capsys.readouterr().err
