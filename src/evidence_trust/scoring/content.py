"""Text quality scoring for evidence snippets.

Five components each start at 0.5 and move with pattern counts and simple
text metrics; the final score is their weighted sum.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.evidence import EvidenceUnit
from evidence_trust.scoring.patterns import CONTENT_RULES, PatternRule, count_matches
from evidence_trust.utils.text import clamp, words

logger = structlog.get_logger(__name__)

_PUNCT = re.compile(r"[^\w\s]")


class ContentWeights(BaseModel):
    specificity: float = 0.30
    completeness: float = 0.25
    readability: float = 0.20
    density: float = 0.15
    coherence: float = 0.10


class ContentThresholds(BaseModel):
    min_word_count: int = 15
    max_word_count: int = 100
    min_sentence_count: int = 1
    max_punctuation_ratio: float = 0.25
    min_unique_word_ratio: float = 0.6


class ContentConfig(BaseModel):
    weights: ContentWeights = ContentWeights()
    thresholds: ContentThresholds = ContentThresholds()
    rules: tuple[PatternRule, ...] = CONTENT_RULES


@dataclass
class ContentMetrics:
    word_count: int = 0
    sentence_count: int = 0
    unique_word_ratio: float = 0.0
    punctuation_ratio: float = 0.0
    avg_words_per_sentence: float = 0.0
    specificity_count: int = 0
    vagueness_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_count": self.word_count,
            "sentence_count": self.sentence_count,
            "unique_word_ratio": round(self.unique_word_ratio, 3),
            "punctuation_ratio": round(self.punctuation_ratio, 3),
            "avg_words_per_sentence": round(self.avg_words_per_sentence, 2),
            "specificity_count": self.specificity_count,
            "vagueness_count": self.vagueness_count,
        }


@dataclass
class ContentComponents:
    specificity: float = 0.0
    completeness: float = 0.0
    readability: float = 0.0
    density: float = 0.0
    coherence: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 3) for k, v in vars(self).items()}


@dataclass
class ContentResult:
    score: float
    components: ContentComponents
    metrics: ContentMetrics
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "components": self.components.to_dict(),
            "metrics": self.metrics.to_dict(),
            "reasoning": list(self.reasoning),
        }


class ContentScorer:
    """Scores the textual quality of an evidence unit."""

    def __init__(self, config: Overrides = None):
        config = merge_config(component_defaults(ContentConfig, "content"), config)
        validate_weights(config.weights.model_dump(), "content")
        self._config = config

    def get_config(self) -> ContentConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        validate_weights(config.weights.model_dump(), "content")
        self._config = config

    def _count(self, text: str, category: str) -> int:
        return count_matches(text, self._config.rules, category)

    def score(self, unit: EvidenceUnit) -> ContentResult:
        text = unit.text or ""
        if not text.strip():
            return ContentResult(
                score=0.0,
                components=ContentComponents(),
                metrics=ContentMetrics(),
                reasoning=["No text to score"],
            )

        reasoning: list[str] = []
        metrics = self._metrics(unit)
        components = ContentComponents(
            specificity=self._specificity(text, metrics, reasoning),
            completeness=self._completeness(unit, metrics, reasoning),
            readability=self._readability(text, metrics, reasoning),
            density=self._density(text, metrics, reasoning),
            coherence=self._coherence(text, metrics, reasoning),
        )
        w = self._config.weights
        final = clamp(
            components.specificity * w.specificity
            + components.completeness * w.completeness
            + components.readability * w.readability
            + components.density * w.density
            + components.coherence * w.coherence
        )
        reasoning.append(f"Final content score: {final * 100:.1f}%")
        return ContentResult(score=final, components=components, metrics=metrics, reasoning=reasoning)

    def _metrics(self, unit: EvidenceUnit) -> ContentMetrics:
        text = unit.text
        tokens = words(text)
        word_count = unit.words()
        sentence_count = unit.sentences()
        return ContentMetrics(
            word_count=word_count,
            sentence_count=sentence_count,
            unique_word_ratio=len({t.lower() for t in tokens}) / len(tokens) if tokens else 0.0,
            punctuation_ratio=len(_PUNCT.findall(text)) / len(text) if text else 0.0,
            avg_words_per_sentence=word_count / sentence_count if sentence_count else 0.0,
            specificity_count=self._count(text, "specificity"),
            vagueness_count=self._count(text, "vague"),
        )

    def _specificity(self, text: str, metrics: ContentMetrics, reasoning: list[str]) -> float:
        score = 0.5
        if metrics.specificity_count:
            score += min(0.4, metrics.specificity_count * 0.1)
            reasoning.append(f"Specific details: {metrics.specificity_count} indicators")
        if metrics.vagueness_count:
            score -= min(0.3, metrics.vagueness_count * 0.05)
            reasoning.append(f"Vague language: {metrics.vagueness_count} indicators")
        formality = self._count(text, "formality")
        if formality:
            score += min(0.15, formality * 0.05)
        return clamp(score)

    def _completeness(self, unit: EvidenceUnit, metrics: ContentMetrics, reasoning: list[str]) -> float:
        score = 0.5
        start, end = unit.complete_start(), unit.complete_end()
        if start and end:
            score += 0.2
        elif start or end:
            score += 0.1
        else:
            reasoning.append("Fragment: neither boundary is a sentence boundary")

        avg = metrics.avg_words_per_sentence
        if 8 <= avg <= 25:
            score += 0.15
        elif avg < 5 or avg > 30:
            score -= 0.1

        max_punct = self._config.thresholds.max_punctuation_ratio
        if 0.05 <= metrics.punctuation_ratio <= max_punct:
            score += 0.1
        elif metrics.punctuation_ratio > max_punct:
            score -= 0.15
            reasoning.append(f"Excessive punctuation: {metrics.punctuation_ratio * 100:.1f}%")
        return clamp(score)

    def _readability(self, text: str, metrics: ContentMetrics, reasoning: list[str]) -> float:
        t = self._config.thresholds
        score = 0.5
        if t.min_word_count <= metrics.word_count <= t.max_word_count:
            score += 0.2
        elif metrics.word_count < t.min_word_count:
            score -= min(0.3, (t.min_word_count - metrics.word_count) * 0.02)
            reasoning.append(f"Too short: {metrics.word_count} words")
        else:
            score -= min(0.2, (metrics.word_count - t.max_word_count) * 0.01)
            reasoning.append(f"Too long: {metrics.word_count} words")

        structural = self._count(text, "structural")
        if structural:
            score += min(0.15, structural * 0.05)

        if metrics.unique_word_ratio >= t.min_unique_word_ratio:
            score += 0.15
        else:
            score -= (t.min_unique_word_ratio - metrics.unique_word_ratio) * 0.3
        return clamp(score)

    def _density(self, text: str, metrics: ContentMetrics, reasoning: list[str]) -> float:
        score = 0.5
        information = metrics.specificity_count / max(1.0, metrics.word_count / 10)
        if information >= 0.5:
            score += 0.3
        elif information >= 0.2:
            score += 0.15

        fillers = self._count(text, "filler")
        if fillers > metrics.word_count * 0.1:
            score -= min(0.2, fillers * 0.02)
            reasoning.append(f"Filler words: {fillers}")

        facts = self._count(text, "fact")
        if facts:
            score += min(0.2, facts * 0.05)
        return clamp(score)

    def _coherence(self, text: str, metrics: ContentMetrics, reasoning: list[str]) -> float:
        score = 0.5
        transitions = self._count(text, "transition")
        if transitions:
            score += min(0.2, transitions * 0.1)

        past = self._count(text, "past_tense")
        present = self._count(text, "present_tense")
        if past + present:
            consistency = max(past, present) / (past + present)
            if consistency >= 0.7:
                score += 0.15

        contradictions = self._count(text, "contradiction")
        if contradictions > metrics.sentence_count * 0.5:
            score -= 0.1
            reasoning.append(f"Excessive contradictions: {contradictions}")
        return clamp(score)
