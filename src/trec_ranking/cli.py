"""
Command-line entry point.

Usage:
    trec-ranking index docs.jsonl latimes_index --stem
    trec-ranking search latimes_index queries.txt bm25-stem.txt
    trec-ranking evaluate bm25-stem.txt qrels.txt --output output.txt

    # Any source can also be an ir_datasets id:
    trec-ranking index --ir-dataset beir/scifact scifact_index

Defaults can be set through environment variables:
    TREC_RUN_TAG=BM25       # run tag written to run files
    TREC_MAX_RESULTS=1000   # results kept per query
    TREC_STEM=1             # Porter stemming when indexing (0 or 1)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from trec_ranking import datasets, trec_io
from trec_ranking.errors import TrecRankingError
from trec_ranking.evaluation import evaluate, format_report, mean_scores
from trec_ranking.index import Index, build_index
from trec_ranking.search import DEFAULT_RUN_TAG, MAX_RESULTS, search

logger = logging.getLogger("trec_ranking")

DEFAULT_RUN_TAG_ENV = os.environ.get("TREC_RUN_TAG", DEFAULT_RUN_TAG)
DEFAULT_MAX_RESULTS = int(os.environ.get("TREC_MAX_RESULTS", str(MAX_RESULTS)))
DEFAULT_STEM = os.environ.get("TREC_STEM", "0") == "1"


def _parse_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _cmd_index(args: argparse.Namespace) -> int:
    if args.ir_dataset:
        fields = _parse_list(args.fields) if args.fields else ["title", "text"]
        documents = datasets.iter_documents(datasets.load(args.source), fields)
    else:
        fields = _parse_list(args.fields) if args.fields else list(trec_io.DEFAULT_TEXT_FIELDS)
        documents = trec_io.read_documents(args.source, fields)

    index = build_index(documents, stem=args.stem, progress=not args.quiet)
    index.save(args.output)
    return 0


def _cmd_search(args: argparse.Namespace) -> int:
    index = Index.load(args.index)
    if args.ir_dataset:
        queries = datasets.load_queries(datasets.load(args.queries), args.query_field)
    else:
        queries = trec_io.read_queries(args.queries)

    stem = None if args.stem is None else args.stem == 1
    results = search(index, queries, top_k=args.top_k, stem=stem, progress=not args.quiet)
    trec_io.write_run_file(args.output, results, args.run_tag)
    return 0


def _cmd_evaluate(args: argparse.Namespace) -> int:
    if args.ir_dataset:
        judgments = datasets.load_judgments(datasets.load(args.qrels))
    else:
        judgments = trec_io.read_qrels(args.qrels)
    run = trec_io.read_run_file(args.run)

    scores = evaluate(run.results, judgments)
    if args.output:
        trec_io.write_report(args.output, scores)
    else:
        sys.stdout.write(format_report(scores))

    for metric, value in mean_scores(scores).items():
        logger.info("%s all %.4f", metric, value)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trec-ranking", description="BM25 indexing, retrieval and TREC-style evaluation"
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--quiet", action="store_true", help="Hide progress bars")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_index = subparsers.add_parser("index", help="Build an index from a document collection")
    p_index.add_argument("source", help="JSON Lines documents file, or an ir_datasets id")
    p_index.add_argument("output", help="Directory to write the index to")
    p_index.add_argument("--ir-dataset", action="store_true", help="Treat source as an ir_datasets id")
    p_index.add_argument(
        "--stem",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_STEM,
        help="Porter-stem tokens (default from TREC_STEM)",
    )
    p_index.add_argument("--fields", help="Comma-separated text fields to index")
    p_index.set_defaults(func=_cmd_index)

    p_search = subparsers.add_parser("search", help="Rank documents for a query file")
    p_search.add_argument("index", help="Index directory")
    p_search.add_argument("queries", help="Query file, or an ir_datasets id")
    p_search.add_argument("output", help="Run file to write")
    p_search.add_argument("--ir-dataset", action="store_true", help="Treat queries as an ir_datasets id")
    p_search.add_argument("--query-field", default="text", help="ir_datasets query field")
    p_search.add_argument("--run-tag", default=DEFAULT_RUN_TAG_ENV)
    p_search.add_argument("--top-k", type=int, default=DEFAULT_MAX_RESULTS)
    p_search.add_argument(
        "--stem",
        type=int,
        choices=(0, 1),
        help="Override query stemming (default: the index's setting)",
    )
    p_search.set_defaults(func=_cmd_search)

    p_eval = subparsers.add_parser("evaluate", help="Score a run file against qrels")
    p_eval.add_argument("run", help="Run file")
    p_eval.add_argument("qrels", help="Qrels file, or an ir_datasets id")
    p_eval.add_argument("--ir-dataset", action="store_true", help="Treat qrels as an ir_datasets id")
    p_eval.add_argument("--output", help="Write the report here instead of stdout")
    p_eval.set_defaults(func=_cmd_evaluate)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        return args.func(args)
    except TrecRankingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
