"""
Inverted index construction and persistence.

``IndexBuilder`` owns all mutable state for a single build. ``build()`` freezes
it into an ``Index``: a lexicon, one postings list per term id, document
lengths and the DocNo table. The index is read-only after that and can be
shared by any number of queries.

Postings lists keep insertion order (the order documents were added), which
is also the order they are written to disk. Consumers must not rely on them
being sorted by doc id.

On-disk layout (one directory):
    lexicon.json  : terms in term id order
    docnos.json   : DocNos in doc id order
    meta.json     : format version, stemming flag, counts
    index.npz     : doc_ids / frequencies (all postings concatenated by term id),
                    offsets (term i spans offsets[i]:offsets[i + 1]),
                    doc_lengths (indexed by doc id)

Usage:
    index = build_index(documents, stem=True)
    index.save("latimes_index")
    index = Index.load("latimes_index")
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

import numpy as np
from tqdm import tqdm

from trec_ranking.errors import DuplicateKeyError
from trec_ranking.lexicon import Lexicon
from trec_ranking.tokenizer import tokenize

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

LEXICON_FILE = "lexicon.json"
DOCNOS_FILE = "docnos.json"
META_FILE = "meta.json"
ARRAYS_FILE = "index.npz"


class Posting(NamedTuple):
    doc_id: int
    frequency: int


@dataclass(frozen=True)
class Document:
    """A document as delivered by the document store: its DocNo and extracted text."""

    docno: str
    text: str


def _frozen(values: Sequence[int] | NDArray[np.int64]) -> NDArray[np.int64]:
    array = np.array(values, dtype=np.int64)
    array.setflags(write=False)
    return array


class PostingsList:
    """
    Occurrences of one term: parallel arrays of doc ids and term frequencies.

    Iterating yields ``Posting`` tuples in insertion order.
    """

    __slots__ = ("doc_ids", "frequencies")

    def __init__(self, doc_ids: Sequence[int], frequencies: Sequence[int]):
        if len(doc_ids) != len(frequencies):
            raise ValueError("doc_ids and frequencies must have the same length")
        self.doc_ids = _frozen(doc_ids)
        self.frequencies = _frozen(frequencies)

    @property
    def document_frequency(self) -> int:
        """Number of documents containing the term."""
        return len(self.doc_ids)

    def __len__(self) -> int:
        return len(self.doc_ids)

    def __iter__(self) -> Iterator[Posting]:
        for doc_id, frequency in zip(self.doc_ids.tolist(), self.frequencies.tolist()):
            yield Posting(doc_id, frequency)

    def __getitem__(self, position: int) -> Posting:
        return Posting(int(self.doc_ids[position]), int(self.frequencies[position]))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PostingsList):
            return NotImplemented
        return np.array_equal(self.doc_ids, other.doc_ids) and np.array_equal(
            self.frequencies, other.frequencies
        )

    def __repr__(self) -> str:
        return f"PostingsList({list(self)!r})"


class Index:
    """
    Immutable index artifact.

    Attributes:
        lexicon: Read-only term <-> term id dictionary (a frozen copy).
        postings: Postings list per term id.
        doc_lengths: Token count per doc id (read-only array).
        docnos: External DocNo per doc id, unique across the index.
        stem: Whether the indexed text was Porter-stemmed. Queries must be
            tokenized with the same setting.
    """

    def __init__(
        self,
        lexicon: Lexicon,
        postings: Sequence[PostingsList],
        doc_lengths: Sequence[int] | NDArray[np.int64],
        docnos: Sequence[str],
        stem: bool = False,
    ):
        if len(postings) != len(lexicon):
            raise ValueError(
                f"Lexicon has {len(lexicon)} terms but {len(postings)} postings lists were given"
            )
        if len(doc_lengths) != len(docnos):
            raise ValueError(
                f"{len(doc_lengths)} document lengths but {len(docnos)} DocNos were given"
            )
        duplicates = [docno for docno, count in Counter(docnos).items() if count > 1]
        if duplicates:
            raise DuplicateKeyError(
                f"DocNo {duplicates[0]!r} is assigned to more than one document"
            )
        self.lexicon = lexicon.frozen()
        self.postings: tuple[PostingsList, ...] = tuple(postings)
        self.doc_lengths = _frozen(doc_lengths)
        self.docnos: tuple[str, ...] = tuple(docnos)
        self.stem = stem

    @property
    def document_count(self) -> int:
        return len(self.docnos)

    @cached_property
    def average_document_length(self) -> float:
        """Mean token count over all documents (0.0 for an empty index)."""
        return float(np.mean(self.doc_lengths)) if self.document_count else 0.0

    @cached_property
    def _docno_to_id(self) -> dict[str, int]:
        return {docno: doc_id for doc_id, docno in enumerate(self.docnos)}

    def postings_for(self, term: str) -> PostingsList | None:
        """Postings list of ``term``, or None when the term is not indexed."""
        term_id = self.lexicon.term_id(term)
        if term_id is None:
            return None
        return self.postings[term_id]

    def docno(self, doc_id: int) -> str:
        return self.docnos[doc_id]

    def doc_id(self, docno: str) -> int:
        return self._docno_to_id[docno]

    def __repr__(self) -> str:
        return (
            f"Index(documents={self.document_count}, terms={len(self.lexicon)}, stem={self.stem})"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, directory: str | Path) -> Path:
        """Write the index into ``directory`` (created if missing)."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        sizes = [len(plist) for plist in self.postings]
        offsets = np.zeros(len(sizes) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum(np.array(sizes, dtype=np.int64))
        if self.postings:
            doc_ids = np.concatenate([plist.doc_ids for plist in self.postings])
            frequencies = np.concatenate([plist.frequencies for plist in self.postings])
        else:
            doc_ids = np.zeros(0, dtype=np.int64)
            frequencies = np.zeros(0, dtype=np.int64)

        np.savez(
            directory / ARRAYS_FILE,
            doc_ids=doc_ids,
            frequencies=frequencies,
            offsets=offsets,
            doc_lengths=self.doc_lengths,
        )
        (directory / LEXICON_FILE).write_text(json.dumps(self.lexicon.terms), encoding="utf-8")
        (directory / DOCNOS_FILE).write_text(json.dumps(list(self.docnos)), encoding="utf-8")
        meta = {
            "format_version": FORMAT_VERSION,
            "stem": self.stem,
            "document_count": self.document_count,
            "term_count": len(self.lexicon),
        }
        (directory / META_FILE).write_text(json.dumps(meta, indent=2), encoding="utf-8")

        logger.info(
            "Index saved: %d documents, %d terms, %d postings to %s",
            self.document_count,
            len(self.lexicon),
            len(doc_ids),
            directory,
        )
        return directory

    @classmethod
    def load(cls, directory: str | Path) -> Index:
        directory = Path(directory)
        meta = json.loads((directory / META_FILE).read_text(encoding="utf-8"))
        if meta.get("format_version") != FORMAT_VERSION:
            raise ValueError(
                f"Unsupported index format version {meta.get('format_version')!r} in {directory}"
            )
        terms = json.loads((directory / LEXICON_FILE).read_text(encoding="utf-8"))
        docnos = json.loads((directory / DOCNOS_FILE).read_text(encoding="utf-8"))

        with np.load(directory / ARRAYS_FILE, allow_pickle=False) as arrays:
            doc_ids = arrays["doc_ids"]
            frequencies = arrays["frequencies"]
            offsets = arrays["offsets"]
            doc_lengths = arrays["doc_lengths"]

        if len(offsets) != len(terms) + 1:
            raise ValueError(f"Postings offsets do not match the lexicon size in {directory}")
        postings = [
            PostingsList(doc_ids[start:end], frequencies[start:end])
            for start, end in zip(offsets[:-1].tolist(), offsets[1:].tolist())
        ]
        index = cls(Lexicon(terms), postings, doc_lengths, docnos, stem=bool(meta["stem"]))
        logger.info("Index loaded: %r from %s", index, directory)
        return index


class IndexBuilder:
    """
    Single-use in-memory index builder.

    Maintains, per term id, growing lists of doc ids and frequencies, plus the
    document lengths and DocNos seen so far. Doc ids must arrive densely in
    ingestion order starting at 0.
    """

    def __init__(self, stem: bool = False):
        self.stem = stem
        self.lexicon = Lexicon()
        self._doc_ids: list[list[int]] = []
        self._frequencies: list[list[int]] = []
        self._doc_lengths: list[int] = []
        self._docnos: list[str] = []
        self._seen_docnos: set[str] = set()
        self._built = False

    @property
    def document_count(self) -> int:
        return len(self._doc_lengths)

    def add_document(self, doc_id: int, token_ids: Sequence[int]) -> int:
        """
        Post one document.

        Args:
            doc_id: Internal id of the document; must equal ``document_count``.
            token_ids: Term ids of the document's tokens, repeats included.

        Returns:
            The document length (number of tokens). The DocNo is the doc id
            as a string.
        """
        return self._post(doc_id, token_ids, str(doc_id))

    def add(self, docno: str, tokens: Sequence[str]) -> int:
        """Intern ``tokens``, post them under the next doc id and return that id."""
        self._check_open()
        if docno in self._seen_docnos:
            raise DuplicateKeyError(f"DocNo {docno!r} has already been added")
        doc_id = self.document_count
        self._post(doc_id, self.lexicon.intern_all(tokens), docno)
        return doc_id

    def _post(self, doc_id: int, token_ids: Sequence[int], docno: str) -> int:
        self._check_open()
        if doc_id < 0:
            raise ValueError(f"Doc ids must be non-negative, got {doc_id}")
        if doc_id < self.document_count:
            raise DuplicateKeyError(f"Document {doc_id} has already been added")
        if docno in self._seen_docnos:
            raise DuplicateKeyError(f"DocNo {docno!r} has already been added")
        if doc_id != self.document_count:
            raise ValueError(
                f"Doc ids must be dense: expected {self.document_count}, got {doc_id}"
            )

        counts = Counter(token_ids)
        vocabulary_size = len(self.lexicon)
        for term_id in counts:
            if not 0 <= term_id < vocabulary_size:
                raise ValueError(f"Term id {term_id} is not in the lexicon")

        # Terms first interned by this document get their lists here.
        while len(self._doc_ids) < vocabulary_size:
            self._doc_ids.append([])
            self._frequencies.append([])

        for term_id, count in counts.items():
            self._doc_ids[term_id].append(doc_id)
            self._frequencies[term_id].append(count)

        length = len(token_ids)
        self._doc_lengths.append(length)
        self._docnos.append(docno)
        self._seen_docnos.add(docno)
        return length

    def build(self) -> Index:
        self._check_open()
        self._built = True
        while len(self._doc_ids) < len(self.lexicon):
            self._doc_ids.append([])
            self._frequencies.append([])
        postings = [
            PostingsList(doc_ids, frequencies)
            for doc_ids, frequencies in zip(self._doc_ids, self._frequencies)
        ]
        index = Index(self.lexicon, postings, self._doc_lengths, self._docnos, stem=self.stem)
        logger.info("Built %r", index)
        return index

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("IndexBuilder.build() has already been called")


def build_index(
    documents: Iterable[Document],
    stem: bool = False,
    progress: bool = False,
) -> Index:
    """
    Tokenize and index a stream of documents in stream order.

    Args:
        documents: Documents in ingestion order; the i-th gets doc id i.
        stem: Porter-stem tokens.
        progress: Show a tqdm progress bar.
    """
    builder = IndexBuilder(stem=stem)
    for document in tqdm(documents, desc="Indexing", unit="doc", disable=not progress):
        builder.add(document.docno, tokenize(document.text, stem=stem))
    return builder.build()
