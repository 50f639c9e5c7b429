"""
Bidirectional term <-> term id dictionary.

Ids are dense and assigned in first-seen order, so ``terms[i]`` is the term
with id ``i``. That list is also the persisted form of the lexicon.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class Lexicon:
    """
    Term dictionary built incrementally while indexing.

    Typical usage:
        lex = Lexicon()
        lex.intern("hello")   # 0
        lex.intern("world")   # 1
        lex.intern("hello")   # 0
        lex.term(1)           # "world"
    """

    def __init__(self, terms: Iterable[str] = ()):
        self._term_to_id: dict[str, int] = {}
        self._id_to_term: list[str] = []
        self._read_only = False
        for term in terms:
            if term in self._term_to_id:
                raise ValueError(f"Duplicate term in lexicon: {term!r}")
            self.intern(term)

    def intern(self, term: str) -> int:
        """Return the id of ``term``, assigning the next free id if it is new."""
        term_id = self._term_to_id.get(term)
        if term_id is None:
            if self._read_only:
                raise RuntimeError(f"Cannot add {term!r} to a read-only lexicon")
            term_id = len(self._id_to_term)
            self._term_to_id[term] = term_id
            self._id_to_term.append(term)
        return term_id

    def intern_all(self, tokens: Iterable[str]) -> list[int]:
        return [self.intern(token) for token in tokens]

    def frozen(self) -> Lexicon:
        """Read-only copy; interning a new term in it raises RuntimeError."""
        copy = Lexicon(self._id_to_term)
        copy._read_only = True
        return copy

    @property
    def read_only(self) -> bool:
        return self._read_only

    def term_id(self, term: str) -> int | None:
        """Id of ``term``, or None when it was never seen."""
        return self._term_to_id.get(term)

    def term(self, term_id: int) -> str:
        if term_id < 0:
            raise IndexError(f"Negative term id: {term_id}")
        return self._id_to_term[term_id]

    @property
    def terms(self) -> list[str]:
        """All terms in id order (a copy)."""
        return list(self._id_to_term)

    def __contains__(self, term: object) -> bool:
        return term in self._term_to_id

    def __len__(self) -> int:
        return len(self._id_to_term)

    def __iter__(self) -> Iterator[str]:
        return iter(self._id_to_term)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lexicon):
            return NotImplemented
        return self._id_to_term == other._id_to_term

    def __repr__(self) -> str:
        return f"Lexicon(size={len(self)})"
