from __future__ import annotations

from collections.abc import Iterator, Sequence

import ir_datasets

from trec_ranking.errors import DuplicateKeyError
from trec_ranking.index import Document
from trec_ranking.judgments import RelevanceJudgments
from trec_ranking.trec_io import Query


def load(dataset_id: str) -> ir_datasets.Dataset:
    return ir_datasets.load(dataset_id)


def iter_documents(
    dataset: ir_datasets.Dataset, fields: Sequence[str] = ("title", "text")
) -> Iterator[Document]:
    """
    Maps the dataset's documents to ``Document``s in stream order.

    Args:
        dataset: Any ir_datasets dataset providing docs.
        fields: Document attributes joined (with a space) into the indexed
            text. Attributes the document type lacks are skipped.
    """
    for doc in dataset.docs_iter():
        text = " ".join(str(getattr(doc, field, "") or "") for field in fields)
        yield Document(doc.doc_id, text)


def load_queries(dataset: ir_datasets.Dataset, field: str = "text") -> list[Query]:
    """Queries of the dataset, using ``field`` as the query text."""
    return [Query(query.query_id, getattr(query, field)) for query in dataset.queries_iter()]


def load_judgments(dataset: ir_datasets.Dataset) -> RelevanceJudgments:
    """
    Collects the dataset's qrels into ``RelevanceJudgments``.

    Raises:
        DuplicateKeyError: If the dataset judges a (query, document) pair twice.
    """
    judgments = RelevanceJudgments()
    for qrel in dataset.qrels_iter():
        if not judgments.try_add(qrel.query_id, qrel.doc_id, int(qrel.relevance)):
            raise DuplicateKeyError(
                f"Duplicate qrel for query {qrel.query_id!r} and document {qrel.doc_id!r}"
            )
    return judgments
