"""Token-overlap similarity used across scorers and validators.

The engine never runs an embedding model. Components take a
``SimilarityBackend`` so a caller can plug in something better; the
default is Jaccard overlap of normalized word tokens.
"""
from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

_PUNCTUATION = re.compile(r"[^\w\s]")
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> set[str]:
    """Lowercase, delete punctuation and keep words longer than two characters."""
    cleaned = _PUNCTUATION.sub("", (text or "").lower())
    return {w for w in cleaned.split() if len(w) >= MIN_TOKEN_LENGTH}


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of the token sets of two strings."""
    tokens_a = tokenize(text_a)
    tokens_b = tokenize(text_b)
    if not tokens_a or not tokens_b:
        return 0.0
    union = tokens_a | tokens_b
    return len(tokens_a & tokens_b) / len(union)


@runtime_checkable
class SimilarityBackend(Protocol):
    """Anything that scores two texts in [0, 1]."""

    def similarity(self, text_a: str, text_b: str) -> float:
        ...


class TokenOverlapSimilarity:
    """Default backend: Jaccard overlap of word tokens."""

    def similarity(self, text_a: str, text_b: str) -> float:
        return jaccard_similarity(text_a, text_b)


DEFAULT_SIMILARITY = TokenOverlapSimilarity()
