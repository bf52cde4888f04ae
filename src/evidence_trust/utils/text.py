"""Small text helpers shared by the scorers and validators."""
from __future__ import annotations

import re

_WORD_SPLIT = re.compile(r"\s+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_TERMINAL = re.compile(r"[.!?][\"')\]]*$")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def words(text: str) -> list[str]:
    """Whitespace-delimited words of ``text``."""
    return [w for w in _WORD_SPLIT.split((text or "").strip()) if w]


def count_words(text: str) -> int:
    return len(words(text))


def split_sentences(text: str) -> list[str]:
    """Split on runs of sentence punctuation, dropping empty pieces."""
    return [s.strip() for s in _SENTENCE_SPLIT.split(text or "") if s.strip()]


def count_sentences(text: str) -> int:
    """Sentence count, at least one for any text."""
    return max(1, len(split_sentences(text)))


def starts_complete(text: str) -> bool:
    """Heuristic used when an evidence unit carries no boundary flag."""
    stripped = (text or "").lstrip()
    return bool(stripped) and (stripped[0].isupper() or stripped[0].isdigit() or stripped[0] in "\"'(")


def ends_complete(text: str) -> bool:
    return bool(_TERMINAL.search((text or "").rstrip()))


def mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def variance(values: list[float]) -> float:
    """Population variance."""
    if not values:
        return 0.0
    avg = mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)
