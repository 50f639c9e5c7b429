"""
BM25 ranking over a built ``Index``.

Scoring follows the Robertson/Sparck Jones form without IDF smoothing:

    idf(t)    = ln((N - n + 0.5) / (n + 0.5))
    K(d)      = k1 * ((1 - b) + b * dl(d) / avgdl)
    score(d)  = sum over query token occurrences t of  tf / (K(d) + tf) * idf(t)

``idf`` is negative for terms occurring in more than half of the collection
and is never clamped. Repeated query tokens contribute once per occurrence.
Tokens missing from the lexicon are skipped.

Usage:
    from trec_ranking.bm25 import BM25
    from trec_ranking.tokenizer import tokenize

    bm25 = BM25(index)
    accumulator = bm25.score(tokenize("black bear attacks", stem=index.stem))
    top = bm25.rank(tokenize("black bear attacks", stem=index.stem), top_k=10)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import NamedTuple

import numpy as np

from trec_ranking.index import Index

logger = logging.getLogger(__name__)


class Parameters:
    """Default BM25 parameters."""

    k1: float = 1.2  # TF saturation
    b: float = 0.75  # Length normalization


class ScoredDocument(NamedTuple):
    doc_id: int
    docno: str
    score: float


def idf(document_count: int, document_frequency: int) -> float:
    """Unsmoothed BM25 IDF: ln((N - n + 0.5) / (n + 0.5)). May be negative."""
    return math.log((document_count - document_frequency + 0.5) / (document_frequency + 0.5))


def sort_scored(scored: Sequence[ScoredDocument]) -> list[ScoredDocument]:
    """Score descending, ties broken by DocNo descending."""
    return sorted(scored, key=lambda item: (item.score, item.docno), reverse=True)


class BM25:
    """
    BM25 scorer bound to one index.

    Args:
        index: Built index (shared read-only).
        k1: TF saturation parameter (default 1.2).
        b: Length normalization parameter (default 0.75).
    """

    def __init__(self, index: Index, k1: float | None = None, b: float | None = None):
        self.index = index
        self.k1 = k1 if k1 is not None else Parameters.k1
        self.b = b if b is not None else Parameters.b

        self.N = index.document_count
        self.avgdl = index.average_document_length or 1e-9
        dl = index.doc_lengths.astype(np.float64)
        # Per-document K, computed once for all queries.
        self._k = self.k1 * ((1 - self.b) + self.b * dl / self.avgdl)

    def term_weights(self, term: str) -> tuple[np.ndarray, np.ndarray] | None:
        """
        Contributions of a single query term.

        Returns:
            (doc_ids, contributions) in postings order, or None if the term is
            not in the lexicon.
        """
        postings = self.index.postings_for(term)
        if postings is None:
            return None
        term_idf = idf(self.N, len(postings))
        tf = postings.frequencies.astype(np.float64)
        weight = tf / (self._k[postings.doc_ids] + tf)
        return postings.doc_ids, weight * term_idf

    def score(self, query: Sequence[str]) -> dict[int, float]:
        """
        Accumulate BM25 scores for every document matching at least one query token.

        Args:
            query: Tokenized query (duplicates count once per occurrence).

        Returns:
            Unsorted mapping doc id -> score.
        """
        accumulator: dict[int, float] = {}
        for term in query:
            weights = self.term_weights(term)
            if weights is None:
                continue
            doc_ids, contributions = weights
            for doc_id, contribution in zip(doc_ids.tolist(), contributions.tolist()):
                accumulator[doc_id] = accumulator.get(doc_id, 0.0) + contribution
        logger.debug("Scored %d documents for %d query tokens", len(accumulator), len(query))
        return accumulator

    def rank(self, query: Sequence[str], top_k: int | None = None) -> list[ScoredDocument]:
        """
        Rank matching documents by score.

        Args:
            query: Tokenized query.
            top_k: Optional limit on results.

        Returns:
            Documents sorted by score descending, then DocNo descending.
        """
        scored = [
            ScoredDocument(doc_id, self.index.docno(doc_id), score)
            for doc_id, score in self.score(query).items()
        ]
        ranked = sort_scored(scored)
        if top_k is not None:
            ranked = ranked[:top_k]
        return ranked
