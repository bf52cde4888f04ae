"""Topical relevance of evidence to a persona-extraction target."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel, Field

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.evidence import RelevanceTarget
from evidence_trust.scoring.patterns import (
    CONTEXT_RULES,
    DOMAIN_SPECIFICITY_RULES,
    PERSONA_FIELDS,
    TOPIC_CATEGORIES,
    PatternRule,
    TermCategory,
    count_matches,
    matched_categories,
)
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp, count_words

logger = structlog.get_logger(__name__)

TOPIC_HIT_WEIGHT = 0.1
FIELD_HIT_WEIGHT = 0.15
KEYWORD_HIT_WEIGHT = 0.1
NO_CONTEXT_SEMANTIC_SCORE = 0.5
NO_CONTEXT_DETECTED_SCORE = 0.3

# (ratio floor, score), checked top down
SPECIFICITY_BANDS: tuple[tuple[float, float], ...] = ((0.1, 0.9), (0.05, 0.7), (0.02, 0.5))


class RelevanceWeights(BaseModel):
    direct_match: float = 0.4
    semantic_similarity: float = 0.3
    contextual_relevance: float = 0.2
    domain_specificity: float = 0.1


class RelevanceConfig(BaseModel):
    similarity_threshold: float = 0.3
    weights: RelevanceWeights = RelevanceWeights()
    topic_categories: dict[str, TermCategory] = Field(default_factory=lambda: dict(TOPIC_CATEGORIES))
    persona_fields: dict[str, TermCategory] = Field(default_factory=lambda: dict(PERSONA_FIELDS))
    context_rules: tuple[PatternRule, ...] = CONTEXT_RULES
    specificity_rules: tuple[PatternRule, ...] = DOMAIN_SPECIFICITY_RULES


@dataclass
class RelevanceComponents:
    direct_match: float = 0.0
    semantic_similarity: float = 0.0
    contextual_relevance: float = 0.0
    domain_specificity: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 3) for k, v in vars(self).items()}


@dataclass
class RelevanceResult:
    score: float
    components: RelevanceComponents
    matched_topics: list[str] = field(default_factory=list)
    matched_fields: list[str] = field(default_factory=list)
    matched_keywords: list[str] = field(default_factory=list)
    detected_contexts: list[str] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "components": self.components.to_dict(),
            "matched_topics": list(self.matched_topics),
            "matched_fields": list(self.matched_fields),
            "matched_keywords": list(self.matched_keywords),
            "detected_contexts": list(self.detected_contexts),
            "reasoning": list(self.reasoning),
        }


class RelevanceScorer:
    """Scores how relevant evidence text is to what the caller is extracting."""

    def __init__(self, config: Overrides = None, similarity: SimilarityBackend = DEFAULT_SIMILARITY):
        config = merge_config(component_defaults(RelevanceConfig, "relevance"), config)
        validate_weights(config.weights.model_dump(), "relevance")
        self._config = config
        self._similarity = similarity

    def get_config(self) -> RelevanceConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        validate_weights(config.weights.model_dump(), "relevance")
        self._config = config

    def score(self, text: str, target: RelevanceTarget) -> RelevanceResult:
        text = text or ""
        reasoning: list[str] = []
        lowered = text.lower()

        topics = self._matched_terms(text, lowered, target.topics, self._config.topic_categories)
        fields = self._matched_terms(text, lowered, target.persona_fields, self._config.persona_fields)
        keywords = [k for k in target.keywords if k.lower() in lowered]
        contexts = matched_categories(text, self._config.context_rules)

        components = RelevanceComponents(
            direct_match=self._direct_match(lowered, target, keywords),
            semantic_similarity=self._semantic(text, target, reasoning),
            contextual_relevance=self._contextual(contexts, reasoning),
            domain_specificity=self._domain_specificity(text, reasoning),
        )
        w = self._config.weights
        final = clamp(
            components.direct_match * w.direct_match
            + components.semantic_similarity * w.semantic_similarity
            + components.contextual_relevance * w.contextual_relevance
            + components.domain_specificity * w.domain_specificity
        )
        reasoning.append(
            f"Matched {len(topics)} topics, {len(fields)} fields, {len(keywords)} keywords; "
            f"final relevance score {final * 100:.1f}%"
        )
        return RelevanceResult(
            score=final,
            components=components,
            matched_topics=topics,
            matched_fields=fields,
            matched_keywords=keywords,
            detected_contexts=contexts,
            reasoning=reasoning,
        )

    @staticmethod
    def _matched_terms(
        text: str, lowered: str, names: list[str], table: dict[str, TermCategory]
    ) -> list[str]:
        matched = []
        for name in names:
            category = table.get(name)
            if category and (category.keyword_hits(lowered) or category.pattern_hits(text)):
                matched.append(name)
        return matched

    def _direct_match(self, lowered: str, target: RelevanceTarget, keywords: list[str]) -> float:
        score = 0.0
        for name in target.topics:
            category = self._config.topic_categories.get(name)
            if category:
                hits = category.keyword_hits(lowered) + category.pattern_hits(lowered)
                score += category.weight * hits * TOPIC_HIT_WEIGHT
        for name in target.persona_fields:
            category = self._config.persona_fields.get(name)
            if category:
                hits = category.keyword_hits(lowered) + category.pattern_hits(lowered)
                score += category.weight * hits * FIELD_HIT_WEIGHT
        score += len(keywords) * KEYWORD_HIT_WEIGHT
        return min(1.0, score)

    def _semantic(self, text: str, target: RelevanceTarget, reasoning: list[str]) -> float:
        if not target.context:
            return NO_CONTEXT_SEMANTIC_SCORE
        similarity = self._similarity.similarity(text, target.context)
        if similarity < self._config.similarity_threshold:
            reasoning.append(f"Context similarity {similarity:.2f} below threshold")
            return 0.0
        return similarity

    def _contextual(self, contexts: list[str], reasoning: list[str]) -> float:
        if not contexts:
            return NO_CONTEXT_DETECTED_SCORE
        weights = {r.category: r.weight for r in self._config.context_rules}
        best = max(weights.get(c, 0.4) for c in contexts)
        reasoning.append(f"Detected contexts: {', '.join(contexts)}")
        return best

    def _domain_specificity(self, text: str, reasoning: list[str]) -> float:
        word_count = count_words(text)
        markers = count_matches(text, self._config.specificity_rules)
        ratio = markers / word_count if word_count else 0.0
        for floor, band_score in SPECIFICITY_BANDS:
            if ratio > floor:
                return band_score
        return 0.3
