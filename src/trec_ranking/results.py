"""
System output for one run: scored documents per query.

Entries are keyed by (query id, DocNo) and must be unique. Per-query lists are
returned in trec_eval order: score descending, then DocNo descending. The
stored rank is kept for round-tripping run files but is not used for ordering.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

from trec_ranking.errors import DuplicateKeyError, NotFoundError


class Result(NamedTuple):
    docno: str
    score: float
    rank: int


def _trec_order(result: Result) -> tuple[float, str]:
    return (result.score, result.docno)


class Results:
    """
    Append-only store of ranked results, possibly spanning many queries.

    Typical usage:
        results = Results()
        results.add("401", "LA010189-0001", 12.5, 1)
        results.query_results("401")  # [Result("LA010189-0001", 12.5, 1)]
    """

    def __init__(self):
        self._keys: set[tuple[str, str]] = set()
        self._query_results: dict[str, list[Result]] = {}
        self._sorted: set[str] = set()

    def try_add(self, query_id: str, docno: str, score: float, rank: int) -> bool:
        """Insert a result; return False (and change nothing) if the pair exists."""
        key = (query_id, docno)
        if key in self._keys:
            return False
        self._keys.add(key)
        self._query_results.setdefault(query_id, []).append(Result(docno, score, rank))
        self._sorted.discard(query_id)
        return True

    def add(self, query_id: str, docno: str, score: float, rank: int) -> None:
        if not self.try_add(query_id, docno, score, rank):
            raise DuplicateKeyError(
                f"Duplicate result for query {query_id!r} and document {docno!r}"
            )

    def query_results(self, query_id: str) -> list[Result]:
        """
        Results of one query, score descending with DocNo descending on ties.

        Raises:
            NotFoundError: If the query has no results.
        """
        results = self._query_results.get(query_id)
        if results is None:
            raise NotFoundError(f"No results for query {query_id!r}")
        if query_id not in self._sorted:
            results.sort(key=_trec_order, reverse=True)
            self._sorted.add(query_id)
        return list(results)

    def query_ids(self) -> list[str]:
        """Query ids in insertion order."""
        return list(self._query_results)

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._query_results

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[tuple[str, Result]]:
        """Yield (query id, result) pairs, each query in trec_eval order."""
        for query_id in self.query_ids():
            for result in self.query_results(query_id):
                yield query_id, result
