"""Per-claim confidence from the evidence that supports or contradicts it.

Components:
- source agreement: supporting share of relevant evidence, less a penalty
  for the conflicting share
- evidence count: supporting count against the configured minimum,
  saturating at the maximum
- source quality: similarity-weighted quality of supporting evidence,
  rescaled above a quality floor
- recency: quality-weighted exponential decay of supporting evidence age

Uncertainty grows with evidence scarcity, conflict and scores near 0.5, and
sets a +/- 1.96 * uncertainty interval around the score.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.claims import ClaimField
from evidence_trust.models.evidence import EvidenceContext
from evidence_trust.scoring.patterns import NEGATION_RULES, PatternRule
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp
from evidence_trust.utils.timeutil import Clock, age_in_days, as_aware, utcnow

logger = structlog.get_logger(__name__)

MAX_UNCERTAINTY = 0.5
INTERVAL_Z = 1.96


class ConfidenceWeights(BaseModel):
    source_agreement: float = 0.4
    evidence_count: float = 0.3
    source_quality: float = 0.2
    recency: float = 0.1


class ConfidenceScorerConfig(BaseModel):
    weights: ConfidenceWeights = ConfidenceWeights()
    min_evidence_count: int = 2
    max_evidence_count: int = 10
    recency_decay_days: float = Field(default=365, gt=0)
    min_source_quality: float = Field(default=0.5, ge=0.0, lt=1.0)
    disagreement_penalty: float = Field(default=0.3, ge=0.0)
    support_similarity_threshold: float = 0.7
    conflict_similarity_threshold: float = 0.8
    negation_rules: tuple[PatternRule, ...] = NEGATION_RULES


def validate_scorer_config(config: ConfidenceScorerConfig) -> None:
    validate_weights(config.weights.model_dump(), "confidence")
    if config.min_evidence_count < 1:
        raise ConfigurationError("min_evidence_count must be at least 1")
    if config.max_evidence_count < config.min_evidence_count:
        raise ConfigurationError(
            "max_evidence_count must be >= min_evidence_count",
            details=f"min={config.min_evidence_count} max={config.max_evidence_count}",
        )


@dataclass
class EvidenceAssessment:
    evidence_id: str
    supports: bool
    conflicts: bool
    quality: float
    recency: float
    similarity: float
    created_at: datetime | None = None


@dataclass
class ConfidenceInterval:
    lower: float
    upper: float

    def to_dict(self) -> dict[str, float]:
        return {"lower": round(self.lower, 3), "upper": round(self.upper, 3)}


@dataclass
class ConfidenceBreakdown:
    overall_score: float
    source_agreement: float
    evidence_count: float
    source_quality: float
    recency: float
    interval: ConfidenceInterval
    uncertainty: float
    supporting_evidence_count: int = 0
    conflicting_evidence_count: int = 0
    supporting_evidence_ids: list[str] = field(default_factory=list)
    conflicting_evidence_ids: list[str] = field(default_factory=list)
    average_source_quality: float = 0.0
    most_recent_evidence: datetime | None = None
    cache_hit: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": round(self.overall_score, 3),
            "source_agreement": round(self.source_agreement, 3),
            "evidence_count": round(self.evidence_count, 3),
            "source_quality": round(self.source_quality, 3),
            "recency": round(self.recency, 3),
            "interval": self.interval.to_dict(),
            "uncertainty": round(self.uncertainty, 3),
            "supporting_evidence_count": self.supporting_evidence_count,
            "conflicting_evidence_count": self.conflicting_evidence_count,
            "supporting_evidence_ids": list(self.supporting_evidence_ids),
            "conflicting_evidence_ids": list(self.conflicting_evidence_ids),
            "average_source_quality": round(self.average_source_quality, 3),
            "most_recent_evidence": self.most_recent_evidence.isoformat() if self.most_recent_evidence else None,
            "cache_hit": self.cache_hit,
        }


class ConfidenceScorer:
    """Scores confidence in one claim given the evidence in context."""

    def __init__(
        self,
        config: Overrides = None,
        similarity: SimilarityBackend = DEFAULT_SIMILARITY,
        clock: Clock = utcnow,
    ):
        config = merge_config(component_defaults(ConfidenceScorerConfig, "confidence_scorer"), config)
        validate_scorer_config(config)
        self._config = config
        self._similarity = similarity
        self._clock = clock

    def get_config(self) -> ConfidenceScorerConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        validate_scorer_config(config)
        self._config = config

    def is_negated(self, text: str) -> bool:
        return any(r.matches(text) for r in self._config.negation_rules)

    def contradicts(self, claim_text: str, evidence_text: str) -> bool:
        """True when exactly one of the two texts is negated."""
        return self.is_negated(claim_text) != self.is_negated(evidence_text)

    def assess(self, claim: ClaimField, evidence: list[EvidenceContext]) -> list[EvidenceAssessment]:
        cfg = self._config
        cited = claim.cited_evidence_ids()
        now = self._clock()
        assessments = []
        for ctx in evidence:
            similarity = self._similarity.similarity(claim.text, ctx.text)
            is_cited = ctx.id in cited
            supports = is_cited and similarity >= cfg.support_similarity_threshold
            conflicts = (
                not is_cited
                and similarity >= cfg.conflict_similarity_threshold
                and self.contradicts(claim.text, ctx.text)
            )
            assessments.append(EvidenceAssessment(
                evidence_id=ctx.id,
                supports=supports,
                conflicts=conflicts,
                quality=ctx.effective_quality,
                recency=math.exp(-age_in_days(ctx.unit.created_at, now) / cfg.recency_decay_days),
                similarity=similarity,
                created_at=ctx.unit.created_at,
            ))
        return assessments

    def calculate_confidence(self, claim: ClaimField, evidence: list[EvidenceContext]) -> ConfidenceBreakdown:
        cfg = self._config
        assessments = self.assess(claim, evidence)
        supporting = [a for a in assessments if a.supports]
        conflicting = [a for a in assessments if a.conflicts]

        agreement = self._source_agreement(len(supporting), len(conflicting))
        count = self._evidence_count(len(supporting))
        quality = self._source_quality(supporting)
        recency = self._recency(supporting)

        w = cfg.weights
        overall = clamp(
            agreement * w.source_agreement
            + count * w.evidence_count
            + quality * w.source_quality
            + recency * w.recency
        )
        uncertainty = self._uncertainty(len(supporting), len(conflicting), overall)
        margin = INTERVAL_Z * uncertainty

        dates = [as_aware(a.created_at) for a in assessments if a.created_at is not None]
        breakdown = ConfidenceBreakdown(
            overall_score=overall,
            source_agreement=agreement,
            evidence_count=count,
            source_quality=quality,
            recency=recency,
            interval=ConfidenceInterval(lower=max(0.0, overall - margin), upper=min(1.0, overall + margin)),
            uncertainty=uncertainty,
            supporting_evidence_count=len(supporting),
            conflicting_evidence_count=len(conflicting),
            supporting_evidence_ids=[a.evidence_id for a in supporting],
            conflicting_evidence_ids=[a.evidence_id for a in conflicting],
            average_source_quality=sum(a.quality for a in supporting) / len(supporting) if supporting else 0.0,
            most_recent_evidence=max(dates) if dates else None,
        )
        logger.debug(
            "claim_confidence_calculated",
            field_name=claim.field_name,
            score=round(overall, 3),
            supporting=len(supporting),
            conflicting=len(conflicting),
        )
        return breakdown

    def _source_agreement(self, supporting: int, conflicting: int) -> float:
        relevant = supporting + conflicting
        if relevant == 0:
            return 0.0
        penalty = self._config.disagreement_penalty * (conflicting / relevant)
        return max(0.0, supporting / relevant - penalty)

    def _evidence_count(self, supporting: int) -> float:
        if supporting == 0:
            return 0.0
        if supporting >= self._config.max_evidence_count:
            return 1.0
        return min(1.0, supporting / self._config.min_evidence_count)

    def _source_quality(self, supporting: list[EvidenceAssessment]) -> float:
        total_weight = sum(a.similarity for a in supporting)
        if total_weight == 0:
            return 0.0
        weighted = sum(a.quality * a.similarity for a in supporting) / total_weight
        floor = self._config.min_source_quality
        return clamp((weighted - floor) / (1 - floor))

    def _recency(self, supporting: list[EvidenceAssessment]) -> float:
        total_weight = sum(a.quality for a in supporting)
        if total_weight == 0:
            return 0.0
        return sum(a.recency * a.quality for a in supporting) / total_weight

    def _uncertainty(self, supporting: int, conflicting: int, score: float) -> float:
        relevant = supporting + conflicting
        if relevant == 0:
            return MAX_UNCERTAINTY
        minimum = self._config.min_evidence_count
        scarcity = 0.3 * (1 - relevant / minimum) if relevant < minimum else 0.0
        conflict = 0.2 * (conflicting / relevant)
        centrality = 0.1 * (1 - abs(score - 0.5) * 2)
        return min(MAX_UNCERTAINTY, scarcity + conflict + centrality)
