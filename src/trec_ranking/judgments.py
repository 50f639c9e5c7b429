"""
Relevance judgments (qrels): graded relevance per (query id, DocNo).

Only queries with at least one relevant (grade != 0) judgment are considered
judged; lookups for any other query raise ``NotFoundError``.
"""

from __future__ import annotations

from trec_ranking.errors import DuplicateKeyError, NotFoundError


class RelevanceJudgments:
    """
    Append-only judgment store.

    Typical usage:
        qrels = RelevanceJudgments()
        qrels.add("401", "LA010189-0001", 1)
        qrels.is_relevant("401", "LA010189-0001")  # True
        qrels.num_relevant("401")                  # 1
    """

    def __init__(self):
        self._grades: dict[tuple[str, str], int] = {}
        self._relevant: dict[str, list[str]] = {}

    def try_add(self, query_id: str, docno: str, relevance: int) -> bool:
        """Insert a judgment; return False (and change nothing) if the pair exists."""
        key = (query_id, docno)
        if key in self._grades:
            return False
        self._grades[key] = relevance
        if relevance != 0:
            self._relevant.setdefault(query_id, []).append(docno)
        return True

    def add(self, query_id: str, docno: str, relevance: int) -> None:
        if not self.try_add(query_id, docno, relevance):
            raise DuplicateKeyError(
                f"Duplicate judgment for query {query_id!r} and document {docno!r}"
            )

    def _require_query(self, query_id: str) -> list[str]:
        relevant = self._relevant.get(query_id)
        if relevant is None:
            raise NotFoundError(f"No relevance judgments for query {query_id!r}")
        return relevant

    def judgment(self, query_id: str, docno: str, assume_non_relevant: bool = False) -> int:
        """
        Relevance grade of a document for a query.

        Args:
            assume_non_relevant: Return 0 for unjudged documents instead of raising.

        Raises:
            NotFoundError: The query is not judged, or the document is unjudged
                and ``assume_non_relevant`` is False.
        """
        self._require_query(query_id)
        grade = self._grades.get((query_id, docno))
        if grade is None:
            if assume_non_relevant:
                return 0
            raise NotFoundError(
                f"No relevance judgment for query {query_id!r} and document {docno!r}"
            )
        return grade

    def is_relevant(self, query_id: str, docno: str) -> bool:
        return self.judgment(query_id, docno, assume_non_relevant=True) != 0

    def num_relevant(self, query_id: str) -> int:
        """Number of relevant documents in the collection for the query."""
        return len(self._require_query(query_id))

    def relevant_docnos(self, query_id: str) -> list[str]:
        return list(self._require_query(query_id))

    def query_ids(self) -> list[str]:
        """Judged query ids, sorted lexicographically."""
        return sorted(self._relevant)

    def __contains__(self, query_id: object) -> bool:
        return query_id in self._relevant

    def __len__(self) -> int:
        return len(self._grades)
