"""Persona-level confidence aggregation, batch processing and calibration."""
from __future__ import annotations

import copy
import hashlib
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional

import structlog
from pydantic import BaseModel, Field

from evidence_trust.cache.ttl_cache import TTLCache
from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config
from evidence_trust.engine.calibration import (
    CalibrationAnalysis,
    CalibrationDataPoint,
    CalibrationLog,
    analyze_calibration,
)
from evidence_trust.models.claims import ClaimField, PersonaClaims
from evidence_trust.models.evidence import EvidenceContext
from evidence_trust.scoring.confidence import ConfidenceBreakdown, ConfidenceInterval, ConfidenceScorer
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp
from evidence_trust.utils.timeutil import Clock, utcnow

logger = structlog.get_logger(__name__)

Recommendation = Literal["approve", "review", "reject"]

HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.5
APPROVAL_MIN_CLAIM = 0.6
MIN_CLAIM_FLOOR = 0.3
HIGH_BONUS = 0.05
LOW_PENALTY = 0.1
SUPPORT_SATURATION = 3
EMPTY_UNCERTAINTY = 0.5


class ConfidenceEngineConfig(BaseModel):
    batch_size: int = Field(default=100, ge=1)
    max_workers: int = Field(default=8, ge=1)
    enable_caching: bool = True
    cache_ttl_seconds: float = 300
    cache_max_size: int = Field(default=1000, ge=1)
    auto_approval_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    human_review_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    enable_calibration: bool = False


def _validate(config: ConfidenceEngineConfig) -> None:
    if config.human_review_threshold > config.auto_approval_threshold:
        raise ConfigurationError(
            "human_review_threshold must not exceed auto_approval_threshold",
            details=f"review={config.human_review_threshold} approve={config.auto_approval_threshold}",
        )


@dataclass
class PersonaConfidence:
    persona_id: str
    overall_confidence: float
    claim_confidences: dict[str, ConfidenceBreakdown]
    weighted_average_confidence: float
    minimum_confidence: float
    maximum_confidence: float
    high_confidence_claims: int
    low_confidence_claims: int
    recommendation: Recommendation
    interval: ConfidenceInterval
    uncertainty: float
    failed_claims: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "persona_id": self.persona_id,
            "overall_confidence": round(self.overall_confidence, 3),
            "claim_confidences": {k: v.to_dict() for k, v in self.claim_confidences.items()},
            "weighted_average_confidence": round(self.weighted_average_confidence, 3),
            "minimum_confidence": round(self.minimum_confidence, 3),
            "maximum_confidence": round(self.maximum_confidence, 3),
            "high_confidence_claims": self.high_confidence_claims,
            "low_confidence_claims": self.low_confidence_claims,
            "recommendation": self.recommendation,
            "interval": self.interval.to_dict(),
            "uncertainty": round(self.uncertainty, 3),
            "failed_claims": list(self.failed_claims),
        }


@dataclass
class BatchStatistics:
    total_personas: int = 0
    total_claims: int = 0
    average_confidence: float = 0.0
    processing_time_ms: float = 0.0
    approved_count: int = 0
    review_count: int = 0
    rejected_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = dict(vars(self))
        data["average_confidence"] = round(self.average_confidence, 3)
        data["processing_time_ms"] = round(self.processing_time_ms, 1)
        return data


@dataclass
class BatchError:
    persona_id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"persona_id": self.persona_id, "error": self.error}


@dataclass
class BatchResult:
    assessments: dict[str, PersonaConfidence]
    statistics: BatchStatistics
    errors: list[BatchError] = field(default_factory=list)
    calibration: Optional[CalibrationAnalysis] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessments": {k: v.to_dict() for k, v in self.assessments.items()},
            "statistics": self.statistics.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
            "calibration": self.calibration.to_dict() if self.calibration else None,
        }


def _claim_cache_key(claim: ClaimField, evidence: list[EvidenceContext]) -> str:
    text_digest = hashlib.sha1(claim.text.encode()).hexdigest()[:16]
    evidence_ids = ",".join(sorted(e.id for e in evidence))
    citation_ids = ",".join(sorted(eid for c in claim.citations for eid in c.evidence_unit_ids))
    return f"{claim.field_name}:{text_digest}:{evidence_ids}:{citation_ids}"


def _weighted_average(scores: list[float], weights: list[float]) -> float:
    total = sum(weights)
    if not scores or total == 0:
        return 0.0
    return sum(s * w for s, w in zip(scores, weights)) / total


class ConfidenceEngine:
    """Runs claim confidence scoring across personas and batches."""

    def __init__(
        self,
        config: Overrides = None,
        scorer_config: Overrides = None,
        cache: TTLCache[ConfidenceBreakdown] | None = None,
        similarity: SimilarityBackend = DEFAULT_SIMILARITY,
        clock: Clock = utcnow,
    ):
        config = merge_config(component_defaults(ConfidenceEngineConfig, "confidence_engine"), config)
        _validate(config)
        self._config = config
        self.scorer = ConfidenceScorer(scorer_config, similarity=similarity, clock=clock)
        self._owns_cache = cache is None
        self._cache = cache if cache is not None else TTLCache(config.cache_ttl_seconds, config.cache_max_size)
        self._calibration = CalibrationLog()

    def get_config(self) -> ConfidenceEngineConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config
        if self._owns_cache:
            self._cache.resize(config.cache_ttl_seconds, config.cache_max_size)
        if not config.enable_caching:
            self._cache.clear()
        logger.info("confidence_config_updated", enable_caching=config.enable_caching)

    def update_scorer_config(self, overrides: Overrides) -> None:
        """Change scorer settings; cached breakdowns are dropped."""
        self.scorer.update_config(overrides)
        self._cache.clear()

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_statistics(self) -> dict[str, Any]:
        return self._cache.stats().to_dict()

    def calculate_claim_confidence(
        self, claim: ClaimField, evidence: list[EvidenceContext]
    ) -> ConfidenceBreakdown:
        if not self._config.enable_caching:
            return self.scorer.calculate_confidence(claim, evidence)

        key = _claim_cache_key(claim, evidence)
        cached = self._cache.get(key)
        if cached is not None:
            return replace(copy.deepcopy(cached), cache_hit=True)
        breakdown = self.scorer.calculate_confidence(claim, evidence)
        self._cache.set(key, copy.deepcopy(breakdown))
        return breakdown

    def recommend(self, overall: float, minimum: float) -> Recommendation:
        if overall >= self._config.auto_approval_threshold and minimum >= APPROVAL_MIN_CLAIM:
            return "approve"
        if overall >= self._config.human_review_threshold:
            return "review"
        return "reject"

    def calculate_persona_confidence(
        self,
        claims: list[ClaimField],
        evidence: list[EvidenceContext],
        persona_id: str | None = None,
    ) -> PersonaConfidence:
        persona_id = persona_id or "unknown"
        breakdowns: dict[str, ConfidenceBreakdown] = {}
        scores: list[float] = []
        weights: list[float] = []
        failed: list[str] = []

        for claim in claims:
            try:
                breakdown = self.calculate_claim_confidence(claim, evidence)
            except Exception as exc:
                # A failed claim counts as zero confidence at full weight.
                logger.warning(
                    "claim_confidence_failed",
                    persona_id=persona_id,
                    field_name=claim.field_name,
                    error=str(exc),
                )
                failed.append(claim.field_name)
                scores.append(0.0)
                weights.append(1.0)
                continue
            breakdowns[claim.field_name] = breakdown
            scores.append(breakdown.overall_score)
            support = min(1.0, breakdown.supporting_evidence_count / SUPPORT_SATURATION)
            weights.append((support + breakdown.overall_score) / 2)

        weighted = _weighted_average(scores, weights)
        minimum = min(scores) if scores else 0.0
        maximum = max(scores) if scores else 0.0
        high = sum(1 for s in scores if s > HIGH_CONFIDENCE)
        low = sum(1 for s in scores if s < LOW_CONFIDENCE)

        overall = 0.0
        if scores:
            overall = clamp(
                weighted * max(MIN_CLAIM_FLOOR, minimum)
                + HIGH_BONUS * high / len(scores)
                - LOW_PENALTY * low / len(scores)
            )

        uncertainties = [b.uncertainty for b in breakdowns.values()]
        uncertainty = sum(uncertainties) / len(uncertainties) if uncertainties else EMPTY_UNCERTAINTY
        margin = 1.96 * uncertainty

        return PersonaConfidence(
            persona_id=persona_id,
            overall_confidence=overall,
            claim_confidences=breakdowns,
            weighted_average_confidence=weighted,
            minimum_confidence=minimum,
            maximum_confidence=maximum,
            high_confidence_claims=high,
            low_confidence_claims=low,
            recommendation=self.recommend(overall, minimum),
            interval=ConfidenceInterval(lower=max(0.0, overall - margin), upper=min(1.0, overall + margin)),
            uncertainty=uncertainty,
            failed_claims=failed,
        )

    def process_batch(self, personas: list[PersonaClaims]) -> BatchResult:
        """Score many personas; one persona's failure never aborts the batch."""
        start = time.perf_counter()
        completed: dict[str, PersonaConfidence] = {}
        errors: list[BatchError] = []
        size = self._config.batch_size

        # Results are keyed by persona id, so only the first of each id is scored.
        unique: list[PersonaClaims] = []
        seen: set[str] = set()
        for persona in personas:
            if persona.id in seen:
                logger.warning("duplicate_persona_id", persona_id=persona.id)
                errors.append(BatchError(
                    persona_id=persona.id,
                    error="Duplicate persona id; only the first occurrence is scored",
                ))
                continue
            seen.add(persona.id)
            unique.append(persona)

        for offset in range(0, len(unique), size):
            chunk = unique[offset:offset + size]
            workers = min(self._config.max_workers, len(chunk))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self.calculate_persona_confidence, p.claims, p.evidence, p.id): p
                    for p in chunk
                }
                for future in as_completed(futures):
                    persona = futures[future]
                    try:
                        completed[persona.id] = future.result()
                    except Exception as exc:
                        logger.warning("persona_confidence_failed", persona_id=persona.id, error=str(exc))
                        errors.append(BatchError(persona_id=persona.id, error=str(exc)))

        # Report in input order regardless of completion order.
        assessments = {p.id: completed[p.id] for p in unique if p.id in completed}
        stats = BatchStatistics(
            total_personas=len(personas),
            total_claims=sum(len(p.claims) for p in unique if p.id in assessments),
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )
        for a in assessments.values():
            if a.recommendation == "approve":
                stats.approved_count += 1
            elif a.recommendation == "review":
                stats.review_count += 1
            else:
                stats.rejected_count += 1
        if assessments:
            stats.average_confidence = sum(a.overall_confidence for a in assessments.values()) / len(assessments)

        calibration = None
        if self._config.enable_calibration and len(self._calibration):
            calibration = self.analyze_calibration()

        logger.info(
            "confidence_batch_completed",
            total=stats.total_personas,
            approved=stats.approved_count,
            review=stats.review_count,
            rejected=stats.rejected_count,
            errors=len(errors),
            elapsed_ms=round(stats.processing_time_ms, 1),
        )
        return BatchResult(assessments=assessments, statistics=stats, errors=errors, calibration=calibration)

    def add_calibration_point(
        self,
        claim_text: str,
        predicted_confidence: float,
        human_judgment: float,
        evidence_count: int = 0,
        source_quality: float = 0.0,
    ) -> CalibrationDataPoint:
        point = CalibrationDataPoint(
            claim_text=claim_text,
            predicted_confidence=predicted_confidence,
            human_judgment=human_judgment,
            evidence_count=evidence_count,
            source_quality=source_quality,
        )
        self._calibration.add(point)
        return point

    def calibration_points(self) -> tuple[CalibrationDataPoint, ...]:
        return self._calibration.points()

    def analyze_calibration(self) -> CalibrationAnalysis:
        analysis = analyze_calibration(self._calibration.points())
        logger.info(
            "calibration_analyzed",
            samples=analysis.sample_size,
            mae=round(analysis.mean_absolute_error, 4),
            correlation=round(analysis.correlation, 4),
        )
        return analysis
