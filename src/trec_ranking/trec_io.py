"""
Readers and writers for TREC-style text files.

Formats:
    run file   : ``query_id Q0 docno rank score run_tag``, one line per result;
                 run_tag must be identical on every line
    qrels      : ``query_id unused docno relevance``
    query file : alternating lines, ``query_id`` then the query text
    documents  : JSON Lines, ``{"docno": ..., "headline": ..., "text": ..., ...}``
    eval report: ``metric query_id value`` (see ``evaluation.format_report``)

Blank lines are ignored everywhere. Any other malformed line raises
``ValidationError`` naming the file and line; duplicate (query, document)
pairs raise ``DuplicateKeyError``. I/O errors propagate unchanged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import NamedTuple

from trec_ranking.errors import DuplicateKeyError, ValidationError
from trec_ranking.evaluation import MetricScore, format_report
from trec_ranking.index import Document
from trec_ranking.judgments import RelevanceJudgments
from trec_ranking.results import Results

logger = logging.getLogger(__name__)

RUN_FIELDS = 6
QRELS_FIELDS = 4
NULL_TOKEN = "null"
DEFAULT_TEXT_FIELDS: tuple[str, ...] = ("headline", "text", "graphic")


class RunFile(NamedTuple):
    results: Results
    run_tag: str | None


class Query(NamedTuple):
    query_id: str
    text: str


def _is_single_token(value: str) -> bool:
    """True for values a run file line can carry in one column."""
    return len(value.split()) == 1 and value == value.strip() and value != NULL_TOKEN


def _numbered_lines(path: str | Path) -> Iterator[tuple[int, str]]:
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if line.strip():
                yield line_number, line.rstrip("\n")


# =============================================================================
# Run files
# =============================================================================


def read_run_file(path: str | Path) -> RunFile:
    """
    Load a run file into a ``Results`` collection.

    Raises:
        ValidationError: Wrong field count, a ``null`` field, non-numeric rank
            or score, or a run tag differing from the first line's.
        DuplicateKeyError: The same (query, document) pair appears twice.
    """
    path = str(path)
    results = Results()
    run_tag: str | None = None

    for line_number, line in _numbered_lines(path):
        fields = line.split()
        if len(fields) != RUN_FIELDS:
            raise ValidationError(
                f"expected {RUN_FIELDS} columns, got {len(fields)}", path, line_number
            )
        if NULL_TOKEN in fields:
            raise ValidationError("null value in the fields", path, line_number)

        query_id, _, docno, rank_field, score_field, tag = fields
        try:
            rank = int(rank_field)
            score = float(score_field)
        except ValueError:
            raise ValidationError(
                f"non-numeric rank or score: {rank_field!r} {score_field!r}", path, line_number
            ) from None

        if run_tag is None:
            run_tag = tag
        elif tag != run_tag:
            raise ValidationError(
                f"run tag {tag!r} does not match {run_tag!r}", path, line_number
            )

        if not results.try_add(query_id, docno, score, rank):
            raise DuplicateKeyError(
                f"{path}:{line_number}: duplicate result for query {query_id!r} "
                f"and document {docno!r}"
            )

    logger.info(
        "Loaded %d results for %d queries from %s", len(results), len(results.query_ids()), path
    )
    return RunFile(results, run_tag)


def write_run_file(path: str | Path, results: Results, run_tag: str) -> None:
    """
    Write ``results`` as a run file, queries in insertion order.

    Scores are written with ``repr`` so reading the file back reproduces them
    exactly.

    Raises:
        ValueError: The run tag, a query id or a DocNo is empty or contains
            whitespace, or is the ``null`` token; such a line could not be read back.
    """
    if not _is_single_token(run_tag):
        raise ValueError(f"Run tag must be a single non-empty token, got {run_tag!r}")
    for query_id, result in results:
        if not _is_single_token(query_id) or not _is_single_token(result.docno):
            raise ValueError(
                f"Query id and DocNo must be single tokens, got {query_id!r} {result.docno!r}"
            )
    with open(path, "w", encoding="utf-8") as f:
        for query_id, result in results:
            f.write(f"{query_id} Q0 {result.docno} {result.rank} {float(result.score)!r} {run_tag}\n")
    logger.info("Wrote %d results to %s", len(results), path)


# =============================================================================
# Qrels
# =============================================================================


def read_qrels(path: str | Path) -> RelevanceJudgments:
    """
    Load relevance judgments.

    Raises:
        ValidationError: Wrong field count or a non-integer relevance grade.
        DuplicateKeyError: The same (query, document) pair is judged twice.
    """
    path = str(path)
    judgments = RelevanceJudgments()

    for line_number, line in _numbered_lines(path):
        fields = line.split()
        if len(fields) != QRELS_FIELDS:
            raise ValidationError(
                f"expected {QRELS_FIELDS} columns, got {len(fields)}", path, line_number
            )
        query_id, _, docno, grade_field = fields
        try:
            relevance = int(grade_field)
        except ValueError:
            raise ValidationError(
                f"non-integer relevance grade: {grade_field!r}", path, line_number
            ) from None

        if not judgments.try_add(query_id, docno, relevance):
            raise DuplicateKeyError(
                f"{path}:{line_number}: duplicate judgment for query {query_id!r} "
                f"and document {docno!r}"
            )

    logger.info(
        "Loaded %d judgments (%d judged queries) from %s",
        len(judgments),
        len(judgments.query_ids()),
        path,
    )
    return judgments


# =============================================================================
# Queries and documents
# =============================================================================


def read_queries(path: str | Path) -> list[Query]:
    """Load a query file of alternating ``query_id`` / query text lines."""
    path = str(path)
    lines = list(_numbered_lines(path))
    if len(lines) % 2:
        line_number, _ = lines[-1]
        raise ValidationError("query id without query text", path, line_number)

    queries = []
    for (id_line, query_id), (_, text) in zip(lines[::2], lines[1::2]):
        fields = query_id.split()
        if len(fields) != 1:
            raise ValidationError(f"expected a single query id, got {query_id!r}", path, id_line)
        queries.append(Query(fields[0], text.strip()))
    return queries


def read_documents(
    path: str | Path, fields: Sequence[str] = DEFAULT_TEXT_FIELDS
) -> Iterator[Document]:
    """
    Stream documents from a JSON Lines file.

    Each record needs a ``docno`` that is a single token; the listed text
    fields (missing ones count as empty) are joined with single spaces.
    """
    path = str(path)
    for line_number, line in _numbered_lines(path):
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"invalid JSON: {exc.msg}", path, line_number) from None
        if not isinstance(record, dict) or "docno" not in record:
            raise ValidationError("document record without a docno", path, line_number)
        docno = str(record["docno"]).strip()
        if not _is_single_token(docno):
            raise ValidationError(f"invalid docno {docno!r}", path, line_number)
        text = " ".join(str(record.get(field) or "") for field in fields)
        yield Document(docno, text)


# =============================================================================
# Evaluation reports
# =============================================================================


def write_report(path: str | Path, scores: Iterable[MetricScore]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_report(scores))
