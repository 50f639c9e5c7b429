"""Inverted indexing, BM25 retrieval and TREC-style evaluation."""

from trec_ranking.bm25 import BM25, Parameters
from trec_ranking.errors import DuplicateKeyError, NotFoundError, TrecRankingError, ValidationError
from trec_ranking.evaluation import evaluate
from trec_ranking.index import Document, Index, IndexBuilder, build_index
from trec_ranking.judgments import RelevanceJudgments
from trec_ranking.lexicon import Lexicon
from trec_ranking.results import Results
from trec_ranking.tokenizer import tokenize

__all__ = [
    "BM25",
    "Document",
    "DuplicateKeyError",
    "Index",
    "IndexBuilder",
    "Lexicon",
    "NotFoundError",
    "Parameters",
    "RelevanceJudgments",
    "Results",
    "TrecRankingError",
    "ValidationError",
    "build_index",
    "evaluate",
    "tokenize",
]
