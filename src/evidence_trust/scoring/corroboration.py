"""Agreement of an evidence unit with independent sources.

Candidates similar enough to the target count as corroborating. Each one is
checked for independence (different, unrelated domain, different author, no
syndication language, not a near copy) and the score blends how many
corroborators there are, how diverse they are, how consistently they agree
and how independent they are.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.evidence import SourcedEvidence
from evidence_trust.scoring.patterns import RELATED_DOMAIN_GROUPS, SYNDICATION_RULES, PatternRule
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp, mean, variance
from evidence_trust.utils.timeutil import as_aware

logger = structlog.get_logger(__name__)


class CorroborationWeights(BaseModel):
    source_count: float = 0.4
    source_diversity: float = 0.25
    consistency: float = 0.2
    independence: float = 0.15


class DiversityFactors(BaseModel):
    domain: float = 0.4
    tier: float = 0.25
    author: float = 0.2
    temporal: float = 0.15


class CorroborationConfig(BaseModel):
    similarity_threshold: float = 0.7
    max_sources: int = 50
    near_duplicate_threshold: float = 0.95
    independence_bonus: float = 0.2
    temporal_spread_days: int = 30
    weights: CorroborationWeights = CorroborationWeights()
    diversity_factors: DiversityFactors = DiversityFactors()
    related_domains: tuple[tuple[str, ...], ...] = RELATED_DOMAIN_GROUPS
    syndication_rules: tuple[PatternRule, ...] = SYNDICATION_RULES


@dataclass
class Corroborator:
    evidence_id: str
    source_id: str
    similarity: float
    is_independent: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence_id": self.evidence_id,
            "source_id": self.source_id,
            "similarity": round(self.similarity, 3),
            "is_independent": self.is_independent,
        }


@dataclass
class SourceAnalysis:
    total_sources: int = 0
    unique_domains: int = 0
    unique_tiers: int = 0
    unique_authors: int = 0
    time_spread_days: int = 0
    independent_sources: int = 0

    def to_dict(self) -> dict[str, int]:
        return dict(vars(self))


@dataclass
class CorroborationComponents:
    source_count: float = 0.0
    source_diversity: float = 0.0
    consistency: float = 0.0
    independence: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 3) for k, v in vars(self).items()}


@dataclass
class CorroborationResult:
    score: float
    components: CorroborationComponents
    corroborators: list[Corroborator] = field(default_factory=list)
    source_analysis: SourceAnalysis = field(default_factory=SourceAnalysis)
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "components": self.components.to_dict(),
            "corroborators": [c.to_dict() for c in self.corroborators],
            "source_analysis": self.source_analysis.to_dict(),
            "reasoning": list(self.reasoning),
        }


def _validate(config: CorroborationConfig) -> None:
    validate_weights(config.weights.model_dump(), "corroboration")
    validate_weights(config.diversity_factors.model_dump(), "corroboration diversity")
    if config.max_sources < 1:
        raise ConfigurationError("corroboration max_sources must be at least 1")


def count_score(count: int) -> float:
    """Stepped score for the number of corroborating sources."""
    if count <= 0:
        return 0.0
    if count == 1:
        return 0.3
    if count == 2:
        return 0.6
    if count <= 5:
        return 0.8 + (count - 3) * 0.05
    return 1.0


def _bare_domain(domain: str) -> str:
    domain = domain.lower().strip()
    return domain[4:] if domain.startswith("www.") else domain


def is_same_author(author_a: str, author_b: str) -> bool:
    """Exact match, or same surname and same first initial."""
    a = author_a.lower().strip()
    b = author_b.lower().strip()
    if a == b:
        return True
    parts_a, parts_b = a.split(), b.split()
    if len(parts_a) >= 2 and len(parts_b) >= 2:
        return parts_a[-1] == parts_b[-1] and parts_a[0][0] == parts_b[0][0]
    return False


class CorroborationScorer:
    """Scores how well independent sources back up an evidence unit."""

    def __init__(self, config: Overrides = None, similarity: SimilarityBackend = DEFAULT_SIMILARITY):
        config = merge_config(component_defaults(CorroborationConfig, "corroboration"), config)
        _validate(config)
        self._config = config
        self._similarity = similarity

    def get_config(self) -> CorroborationConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config

    def are_related_domains(self, domain_a: str, domain_b: str) -> bool:
        a, b = _bare_domain(domain_a), _bare_domain(domain_b)
        if a == b:
            return True
        return any(a in group and b in group for group in self._config.related_domains)

    def is_syndicated(self, text: str) -> bool:
        return any(r.matches(text) for r in self._config.syndication_rules)

    def is_independent(self, target: SourcedEvidence, candidate: SourcedEvidence, similarity: float) -> bool:
        if self.are_related_domains(target.domain, candidate.domain):
            return False
        if target.source.author and candidate.source.author:
            if is_same_author(target.source.author, candidate.source.author):
                return False
        for item in (target, candidate):
            if self.is_syndicated(f"{item.source.title or ''} {item.unit.text}"):
                return False
        return similarity <= self._config.near_duplicate_threshold

    def score(self, target: SourcedEvidence, related: list[SourcedEvidence]) -> CorroborationResult:
        cfg = self._config
        reasoning: list[str] = []
        pool = [e for e in related if e.id != target.id][: cfg.max_sources]

        found: list[tuple[SourcedEvidence, Corroborator]] = []
        for candidate in pool:
            if candidate.unit.source_id == target.unit.source_id:
                continue
            sim = self._similarity.similarity(target.unit.text, candidate.unit.text)
            if sim >= cfg.similarity_threshold:
                found.append((
                    candidate,
                    Corroborator(
                        evidence_id=candidate.id,
                        source_id=candidate.unit.source_id,
                        similarity=sim,
                        is_independent=self.is_independent(target, candidate, sim),
                    ),
                ))
        found.sort(key=lambda pair: pair[1].similarity, reverse=True)
        reasoning.append(f"{len(found)} corroborating of {len(pool)} candidates")

        analysis = self._analyze(found)
        components = CorroborationComponents(
            source_count=count_score(len(found)),
            source_diversity=self._diversity(analysis),
            consistency=self._consistency([c.similarity for _, c in found]),
            independence=self._independence(analysis),
        )
        w = cfg.weights
        final = clamp(
            components.source_count * w.source_count
            + components.source_diversity * w.source_diversity
            + components.consistency * w.consistency
            + components.independence * w.independence
        )
        reasoning.append(
            f"{analysis.independent_sources} independent, {analysis.unique_domains} domains; "
            f"final corroboration score {final * 100:.1f}%"
        )
        return CorroborationResult(
            score=final,
            components=components,
            corroborators=[c for _, c in found],
            source_analysis=analysis,
            reasoning=reasoning,
        )

    def _analyze(self, found: list[tuple[SourcedEvidence, Corroborator]]) -> SourceAnalysis:
        items = [e for e, _ in found]
        dates = sorted(as_aware(d) for d in (e.published_at for e in items) if d is not None)
        spread = 0
        if len(dates) > 1:
            spread = int((dates[-1] - dates[0]).total_seconds() // 86400)
        return SourceAnalysis(
            total_sources=len(items),
            unique_domains=len({e.domain for e in items}),
            unique_tiers=len({e.source.tier for e in items}),
            unique_authors=len({e.source.author for e in items if e.source.author}),
            time_spread_days=spread,
            independent_sources=sum(1 for _, c in found if c.is_independent),
        )

    def _diversity(self, analysis: SourceAnalysis) -> float:
        total = analysis.total_sources
        if total == 0:
            return 0.0
        f = self._config.diversity_factors
        domain_score = min(1.0, analysis.unique_domains / total)
        tier_score = min(1.0, analysis.unique_tiers / min(4, total))
        author_score = min(1.0, analysis.unique_authors / total) if analysis.unique_authors else 0.5
        time_score = min(1.0, analysis.time_spread_days / self._config.temporal_spread_days)
        return (
            domain_score * f.domain
            + tier_score * f.tier
            + author_score * f.author
            + time_score * f.temporal
        )

    def _consistency(self, similarities: list[float]) -> float:
        if not similarities:
            return 0.0
        base = max(0.0, 1 - variance(similarities) * 2)
        bonus = max(0.0, (mean(similarities) - self._config.similarity_threshold) * 2)
        return min(1.0, base + bonus)

    def _independence(self, analysis: SourceAnalysis) -> float:
        if analysis.total_sources == 0:
            return 0.0
        ratio = analysis.independent_sources / analysis.total_sources
        if analysis.independent_sources:
            ratio = min(1.0, ratio + self._config.independence_bonus)
        return ratio
