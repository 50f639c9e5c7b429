"""Batch BM25 retrieval of a query set into a ``Results`` run."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tqdm import tqdm

from trec_ranking.bm25 import BM25
from trec_ranking.index import Index
from trec_ranking.results import Results
from trec_ranking.tokenizer import tokenize
from trec_ranking.trec_io import Query

logger = logging.getLogger(__name__)

MAX_RESULTS = 1000
DEFAULT_RUN_TAG = "BM25"


def search(
    index: Index,
    queries: Iterable[Query],
    top_k: int = MAX_RESULTS,
    stem: bool | None = None,
    progress: bool = False,
) -> Results:
    """
    Rank the top ``top_k`` documents for every query.

    Queries are processed one at a time, each with its own accumulator.

    Args:
        index: Index to search.
        queries: Queries in output order.
        top_k: Results kept per query.
        stem: Stem query tokens. Defaults to the index's own setting; a
            different value is allowed but logged, since it degrades recall.
        progress: Show a tqdm progress bar.

    Returns:
        Results ranked from 1 by score descending, DocNo descending on ties.
        Queries matching no document contribute no entries.
    """
    if stem is None:
        stem = index.stem
    elif stem != index.stem:
        logger.warning(
            "Query stemming (%s) differs from index stemming (%s)", stem, index.stem
        )

    bm25 = BM25(index)
    results = Results()
    for query in tqdm(queries, desc="Searching", unit="query", disable=not progress):
        ranked = bm25.rank(tokenize(query.text, stem=stem), top_k=top_k)
        for rank, scored in enumerate(ranked, start=1):
            results.add(query.query_id, scored.docno, scored.score, rank)
        logger.debug("Query %s: %d results", query.query_id, len(ranked))
    return results
