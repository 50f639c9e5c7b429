"""Exceptions raised by the indexing, retrieval and evaluation layers."""


class TrecRankingError(Exception):
    """Base class for all library errors."""


class ValidationError(TrecRankingError, ValueError):
    """A run, qrels or query file line is malformed."""

    def __init__(self, message: str, path: str | None = None, line_number: int | None = None):
        self.path = path
        self.line_number = line_number
        if path is not None and line_number is not None:
            message = f"{path}:{line_number}: {message}"
        elif path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class DuplicateKeyError(TrecRankingError, KeyError):
    """A (query, document) pair or a document id was inserted twice."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class NotFoundError(TrecRankingError, KeyError):
    """A mandatory lookup found no entry for the requested query."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
