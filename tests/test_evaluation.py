import math

import pytest

from trec_ranking.errors import NotFoundError
from trec_ranking.evaluation import (
    METRICS,
    MetricScore,
    average_precision,
    evaluate,
    format_report,
    mean_scores,
    ndcg_at_k,
    precision_at_k,
)
from trec_ranking.judgments import RelevanceJudgments
from trec_ranking.results import Results


def make_run(query_id: str, docnos: list[str]) -> Results:
    """Results for one query ranked in list order (first = highest score)."""
    results = Results()
    for rank, docno in enumerate(docnos, start=1):
        results.add(query_id, docno, float(len(docnos) - rank + 1), rank)
    return results


def make_qrels(query_id: str, relevant: list[str], non_relevant: list[str] = ()) -> RelevanceJudgments:
    qrels = RelevanceJudgments()
    for docno in relevant:
        qrels.add(query_id, docno, 1)
    for docno in non_relevant:
        qrels.add(query_id, docno, 0)
    return qrels


class TestAveragePrecision:
    def test_relevant_at_ranks_two_and_four(self):
        results = make_run("1", ["a", "b", "c", "d"])
        qrels = make_qrels("1", ["b", "d"], ["a", "c"])
        assert average_precision("1", results, qrels) == pytest.approx(0.5)

    def test_unretrieved_relevant_documents_lower_ap(self):
        results = make_run("1", ["a", "b"])
        qrels = make_qrels("1", ["a", "x", "y", "z"])
        assert average_precision("1", results, qrels) == pytest.approx(0.25)

    def test_unjudged_documents_count_as_non_relevant(self):
        results = make_run("1", ["unjudged", "a"])
        qrels = make_qrels("1", ["a"])
        assert average_precision("1", results, qrels) == pytest.approx(0.5)

    def test_query_without_results(self):
        results = make_run("2", ["a"])
        qrels = make_qrels("1", ["a"])
        assert average_precision("1", results, qrels) == 0.0

    def test_unjudged_query(self):
        results = make_run("1", ["a"])
        qrels = make_qrels("2", ["a"])
        with pytest.raises(NotFoundError):
            average_precision("1", results, qrels)

    def test_only_first_1000_ranks_count(self):
        docnos = [f"D{i:05d}" for i in range(1001)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", [docnos[0], docnos[-1]])
        assert average_precision("1", results, qrels) == pytest.approx(0.5)

    def test_all_1000_relevant(self):
        docnos = [f"D{i:05d}" for i in range(1000)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", docnos)
        assert average_precision("1", results, qrels) == pytest.approx(1.0)

    def test_ties_use_descending_docno(self):
        results = Results()
        results.add("1", "A", 1.0, 1)
        results.add("1", "B", 1.0, 2)
        qrels = make_qrels("1", ["A"])
        # "B" sorts ahead of "A" despite its stored rank
        assert average_precision("1", results, qrels) == pytest.approx(0.5)


class TestPrecision:
    def test_three_relevant_in_top_ten(self):
        docnos = [f"d{i}" for i in range(10)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", ["d0", "d4", "d9"])
        assert precision_at_k("1", results, qrels) == pytest.approx(0.3)

    def test_fewer_than_ten_results(self):
        results = make_run("1", ["a", "b", "c", "d", "e"])
        qrels = make_qrels("1", ["b", "e"])
        assert precision_at_k("1", results, qrels) == pytest.approx(0.4)

    def test_results_beyond_cutoff_ignored(self):
        docnos = [f"d{i:02d}" for i in range(20)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", docnos[10:])
        assert precision_at_k("1", results, qrels) == 0.0

    def test_query_without_results(self):
        results = make_run("2", ["a"])
        qrels = make_qrels("1", ["a"])
        assert precision_at_k("1", results, qrels) == 0.0


class TestNDCG:
    def test_single_relevant_at_rank_one(self):
        results = make_run("1", ["a", "b", "c"])
        qrels = make_qrels("1", ["a"])
        assert ndcg_at_k("1", results, qrels, 10) == pytest.approx(1.0)

    def test_single_relevant_at_rank_two(self):
        results = make_run("1", ["a", "b"])
        qrels = make_qrels("1", ["b"])
        assert ndcg_at_k("1", results, qrels, 10) == pytest.approx(1 / math.log2(3))

    def test_ideal_capped_at_k(self):
        docnos = [f"d{i:02d}" for i in range(12)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", docnos)
        assert ndcg_at_k("1", results, qrels, 10) == pytest.approx(1.0)

    def test_missed_relevant_documents_lower_ndcg(self):
        results = make_run("1", ["a", "b"])
        qrels = make_qrels("1", ["a", "z"])
        expected = 1.0 / (1.0 + 1 / math.log2(3))
        assert ndcg_at_k("1", results, qrels, 10) == pytest.approx(expected)

    def test_hits_beyond_cutoff_ignored(self):
        docnos = [f"d{i:02d}" for i in range(11)]
        results = make_run("1", docnos)
        qrels = make_qrels("1", [docnos[10]])
        assert ndcg_at_k("1", results, qrels, 10) == 0.0
        assert ndcg_at_k("1", results, qrels, 1000) == pytest.approx(1 / math.log2(12))

    def test_zero_ideal_gain_is_zero(self):
        results = make_run("1", ["a"])
        qrels = make_qrels("1", ["a"])
        assert ndcg_at_k("1", results, qrels, 0) == 0.0

    def test_query_without_results(self):
        results = make_run("2", ["a"])
        qrels = make_qrels("1", ["a"])
        assert ndcg_at_k("1", results, qrels, 10) == 0.0


class TestEvaluate:
    @pytest.fixture
    def run_and_qrels(self):
        results = Results()
        for rank, docno in enumerate(["a", "b", "c"], start=1):
            results.add("402", docno, 10.0 - rank, rank)
        results.add("401", "x", 1.0, 1)
        qrels = RelevanceJudgments()
        qrels.add("402", "b", 1)
        qrels.add("401", "x", 1)
        qrels.add("401", "y", 1)
        qrels.add("403", "q", 0)
        return results, qrels

    def test_grouped_by_metric_then_query(self, run_and_qrels):
        scores = evaluate(*run_and_qrels)
        assert [(s.metric, s.query_id) for s in scores] == [
            (metric, query_id) for metric in METRICS for query_id in ("401", "402")
        ]

    def test_values(self, run_and_qrels):
        scores = {(s.metric, s.query_id): s.value for s in evaluate(*run_and_qrels)}
        assert scores[("ap", "401")] == pytest.approx(0.5)
        assert scores[("ap", "402")] == pytest.approx(0.5)
        assert scores[("P_10", "401")] == pytest.approx(1.0)
        assert scores[("P_10", "402")] == pytest.approx(1 / 3)
        assert scores[("ndcg_cut_10", "402")] == pytest.approx(1 / math.log2(3))

    def test_judged_query_missing_from_run(self):
        results = make_run("1", ["a"])
        qrels = make_qrels("1", ["a"])
        qrels.add("2", "b", 1)
        scores = {(s.metric, s.query_id): s.value for s in evaluate(results, qrels)}
        assert all(scores[(metric, "2")] == 0.0 for metric in METRICS)

    def test_unknown_metric(self, run_and_qrels):
        with pytest.raises(ValueError):
            evaluate(*run_and_qrels, metrics=["map"])

    def test_format_report(self):
        scores = [MetricScore("ap", "401", 0.123456), MetricScore("P_10", "401", 0.3)]
        assert format_report(scores) == "ap 401 0.1235\nP_10 401 0.3000\n"

    def test_mean_scores(self):
        scores = [
            MetricScore("ap", "401", 0.2),
            MetricScore("ap", "402", 0.4),
            MetricScore("P_10", "401", 1.0),
        ]
        assert mean_scores(scores) == pytest.approx({"ap": 0.3, "P_10": 1.0})
