"""Combines the five evidence scorers into one quality assessment.

Authority, content and recency always run when enabled. Corroboration needs
related evidence and relevance needs a target, so each runs only when the
request carries one. Performance mode decides which components may run and
how many assessments a batch runs at once.
"""
from __future__ import annotations

import copy
import hashlib
import json
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Optional

import structlog
from pydantic import BaseModel, Field

from evidence_trust.cache.ttl_cache import TTLCache
from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.evidence import QualityRequest
from evidence_trust.scoring.authority import AuthorityResult, AuthorityScorer
from evidence_trust.scoring.content import ContentResult, ContentScorer
from evidence_trust.scoring.corroboration import CorroborationResult, CorroborationScorer
from evidence_trust.scoring.recency import RecencyResult, RecencyScorer
from evidence_trust.scoring.relevance import RelevanceResult, RelevanceScorer
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp
from evidence_trust.utils.timeutil import Clock, utcnow

logger = structlog.get_logger(__name__)

Component = Literal["authority", "content", "recency", "corroboration", "relevance"]
PerformanceMode = Literal["fast", "balanced", "thorough"]

ALL_COMPONENTS: tuple[str, ...] = ("authority", "content", "recency", "corroboration", "relevance")
FAST_DISABLED = frozenset({"corroboration", "relevance"})
CACHE_TEXT_PREFIX = 100


class QualityWeights(BaseModel):
    authority: float = 0.3
    content: float = 0.25
    recency: float = 0.2
    corroboration: float = 0.15
    relevance: float = 0.1


class ModeConcurrency(BaseModel):
    fast: int = 10
    balanced: int = 5
    thorough: int = 2


class QualityEngineConfig(BaseModel):
    weights: QualityWeights = QualityWeights()
    enabled_components: list[Component] = list(ALL_COMPONENTS)
    performance_mode: PerformanceMode = "balanced"
    enable_caching: bool = True
    cache_ttl_seconds: float = 300
    cache_max_size: int = Field(default=1000, ge=1)
    balanced_max_sources: int = 20
    thorough_max_sources: int = 100
    concurrency: ModeConcurrency = ModeConcurrency()


def _validate(config: QualityEngineConfig) -> None:
    validate_weights(config.weights.model_dump(), "quality")
    for mode, workers in config.concurrency.model_dump().items():
        if workers < 1:
            raise ConfigurationError(f"concurrency for '{mode}' must be at least 1")


@dataclass
class QualityBreakdown:
    authority: float = 0.0
    content: float = 0.0
    recency: float = 0.0
    corroboration: float = 0.0
    relevance: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 3) for k, v in vars(self).items()}


@dataclass
class QualityComponents:
    authority: Optional[AuthorityResult] = None
    content: Optional[ContentResult] = None
    recency: Optional[RecencyResult] = None
    corroboration: Optional[CorroborationResult] = None
    relevance: Optional[RelevanceResult] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v.to_dict() for k, v in vars(self).items() if v is not None}


@dataclass
class QualityAssessment:
    evidence_id: str
    score: float
    breakdown: QualityBreakdown
    confidence: float
    components: QualityComponents = field(default_factory=QualityComponents)
    reasoning: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    cache_hit: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence_id": self.evidence_id,
            "score": round(self.score, 3),
            "breakdown": self.breakdown.to_dict(),
            "confidence": round(self.confidence, 3),
            "components": self.components.to_dict(),
            "reasoning": list(self.reasoning),
            "processing_time_ms": round(self.processing_time_ms, 2),
            "cache_hit": self.cache_hit,
            "error": self.error,
        }


class QualityEngine:
    """Scores evidence quality with caching and batch support."""

    def __init__(
        self,
        config: Overrides = None,
        cache: TTLCache[QualityAssessment] | None = None,
        similarity: SimilarityBackend = DEFAULT_SIMILARITY,
        clock: Clock = utcnow,
    ):
        config = merge_config(component_defaults(QualityEngineConfig, "quality_engine"), config)
        _validate(config)
        self._config = config
        self._owns_cache = cache is None
        self._cache = cache if cache is not None else TTLCache(config.cache_ttl_seconds, config.cache_max_size)

        self.authority = AuthorityScorer()
        self.content = ContentScorer()
        self.recency = RecencyScorer(clock=clock)
        self.corroboration = CorroborationScorer(similarity=similarity)
        self.relevance = RelevanceScorer(similarity=similarity)
        self._base_max_sources = self.corroboration.get_config().max_sources
        self._apply_performance_mode()

    def get_config(self) -> QualityEngineConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config
        self._apply_performance_mode()
        if self._owns_cache:
            self._cache.resize(config.cache_ttl_seconds, config.cache_max_size)
        self._cache.clear()
        logger.info("quality_config_updated", performance_mode=config.performance_mode)

    def update_scorer_configs(
        self,
        authority: Overrides = None,
        content: Overrides = None,
        recency: Overrides = None,
        corroboration: Overrides = None,
        relevance: Overrides = None,
    ) -> None:
        """Apply per-scorer overrides; cached assessments are dropped.

        An explicit corroboration ``max_sources`` holds until the next
        ``update_config`` and becomes the cap ``fast`` mode uses.
        """
        previous_max_sources = self.corroboration.get_config().max_sources
        for scorer, overrides in (
            (self.authority, authority),
            (self.content, content),
            (self.recency, recency),
            (self.corroboration, corroboration),
            (self.relevance, relevance),
        ):
            if overrides is not None:
                scorer.update_config(overrides)
        max_sources = self.corroboration.get_config().max_sources
        if max_sources != previous_max_sources:
            self._base_max_sources = max_sources
        self._cache.clear()

    def _apply_performance_mode(self) -> None:
        mode = self._config.performance_mode
        if mode == "thorough":
            max_sources = self._config.thorough_max_sources
        elif mode == "balanced":
            max_sources = self._config.balanced_max_sources
        else:
            max_sources = self._base_max_sources
        self.corroboration.update_config({"max_sources": max_sources})

    def effective_components(self) -> set[str]:
        enabled = set(self._config.enabled_components)
        if self._config.performance_mode == "fast":
            enabled -= FAST_DISABLED
        return enabled

    def concurrency_limit(self) -> int:
        return getattr(self._config.concurrency, self._config.performance_mode)

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("quality_cache_cleared")

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats().to_dict()

    def _cache_key(self, request: QualityRequest) -> str:
        unit, source = request.unit, request.source
        related = sorted(e.id for e in request.related_evidence or [])
        target = request.relevance_target.model_dump_json() if request.relevance_target else ""
        identity = {
            "id": unit.id,
            "text": unit.text[:CACHE_TEXT_PREFIX],
            "source_id": source.id,
            "tier": source.tier.value,
            "url": source.url,
            "published_at": source.published_at.isoformat() if source.published_at else None,
            "related": related,
            "target": target,
        }
        return hashlib.sha1(json.dumps(identity, sort_keys=True).encode()).hexdigest()

    def assess(self, request: QualityRequest) -> QualityAssessment:
        start = time.perf_counter()
        key = self._cache_key(request) if self._config.enable_caching else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("quality_cache_hit", evidence_id=request.id)
                return replace(
                    copy.deepcopy(cached),
                    cache_hit=True,
                    processing_time_ms=(time.perf_counter() - start) * 1000,
                )

        enabled = self.effective_components()
        reasoning = [f"Assessing evidence {request.id} ({self._config.performance_mode} mode)"]
        components = QualityComponents()
        breakdown = QualityBreakdown()

        if "authority" in enabled:
            components.authority = self.authority.score(request.source)
            breakdown.authority = components.authority.score
        if "content" in enabled:
            components.content = self.content.score(request.unit)
            breakdown.content = components.content.score
        if "recency" in enabled:
            components.recency = self.recency.score(request.unit, request.source)
            breakdown.recency = components.recency.score
        if "corroboration" in enabled and request.related_evidence is not None:
            components.corroboration = self.corroboration.score(request, request.related_evidence)
            breakdown.corroboration = components.corroboration.score
        if "relevance" in enabled and request.relevance_target is not None:
            components.relevance = self.relevance.score(request.unit.text, request.relevance_target)
            breakdown.relevance = components.relevance.score

        for name, value in breakdown.to_dict().items():
            if getattr(components, name) is not None:
                reasoning.append(f"{name.capitalize()}: {value * 100:.1f}%")

        w = self._config.weights
        score = clamp(
            breakdown.authority * w.authority
            + breakdown.content * w.content
            + breakdown.recency * w.recency
            + breakdown.corroboration * w.corroboration
            + breakdown.relevance * w.relevance
        )
        reasoning.append(f"Final weighted quality score: {score * 100:.1f}%")

        assessment = QualityAssessment(
            evidence_id=request.id,
            score=score,
            breakdown=breakdown,
            confidence=self._assessment_confidence(enabled, breakdown, components),
            components=components,
            reasoning=reasoning,
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )
        if key is not None:
            self._cache.set(key, copy.deepcopy(assessment))
        logger.debug("quality_assessed", evidence_id=request.id, score=round(score, 3))
        return assessment

    @staticmethod
    def _assessment_confidence(
        enabled: set[str], breakdown: QualityBreakdown, components: QualityComponents
    ) -> float:
        confidence = sum(0.2 for name in enabled if getattr(breakdown, name) > 0)
        if components.authority and components.authority.score > 0.8:
            confidence += 0.1
        if components.corroboration and components.corroboration.score > 0.6:
            confidence += 0.1
        return min(1.0, confidence)

    def _assess_isolated(self, request: QualityRequest) -> QualityAssessment:
        try:
            return self.assess(request)
        except Exception as exc:
            logger.warning("quality_assessment_failed", evidence_id=request.id, error=str(exc))
            return QualityAssessment(
                evidence_id=request.id,
                score=0.0,
                breakdown=QualityBreakdown(),
                confidence=0.0,
                reasoning=[f"Assessment failed: {exc}"],
                error=str(exc),
            )

    def assess_batch(self, requests: list[QualityRequest]) -> list[QualityAssessment]:
        """Assess many units concurrently; results keep input order."""
        if not requests:
            return []
        workers = min(self.concurrency_limit(), len(requests))
        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(self._assess_isolated, requests))
        failed = sum(1 for r in results if r.error)
        logger.info(
            "quality_batch_completed",
            total=len(results),
            failed=failed,
            workers=workers,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return results
