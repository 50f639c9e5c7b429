"""
Text normalization shared by indexing and querying.

Text is lower-cased and split on every character that is not an ASCII
lowercase letter or digit. With stemming enabled each token goes through
the classic Porter algorithm.

The same ``stem`` setting must be used when building an index and when
tokenizing queries against it; a mismatch silently hurts recall.

Usage:
    from trec_ranking.tokenizer import tokenize

    tokenize("Hello, World! 123")            # ["hello", "world", "123"]
    tokenize("Running dogs", stem=True)      # ["run", "dog"]
"""

from __future__ import annotations

import re
from functools import lru_cache

from nltk.stem.porter import PorterStemmer

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")

# MARTIN_EXTENSIONS follows Porter's own reference implementation and
# leaves out NLTK's irregular-form extensions.
_STEMMER = PorterStemmer(mode=PorterStemmer.MARTIN_EXTENSIONS)


@lru_cache(maxsize=1 << 16)
def porter_stem(token: str) -> str:
    """Porter-stem a single lowercase token."""
    return _STEMMER.stem(token, to_lowercase=False)


def tokenize(text: str, stem: bool = False) -> list[str]:
    """
    Split text into lowercase alphanumeric tokens.

    Args:
        text: Raw text.
        stem: Apply Porter stemming to every token.

    Returns:
        Tokens in text order, repeats included.
    """
    tokens = _TOKEN_PATTERN.findall(text.lower())
    if stem:
        return [porter_stem(token) for token in tokens]
    return tokens
