"""Source authority scoring.

Score = tier base weight + strongest domain boost (or social-media penalty)
+ title language adjustments + metadata adjustments, clamped to [0, 1].
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config
from evidence_trust.models.evidence import Source, SourceTier
from evidence_trust.scoring.patterns import (
    AUTHORITY_DOMAIN_RULES,
    AUTHORITY_METADATA_RULES,
    AUTHORITY_TITLE_RULES,
    PatternRule,
)
from evidence_trust.utils.text import clamp

logger = structlog.get_logger(__name__)


class TierWeights(BaseModel):
    canonical: float = 1.0
    reputable: float = 0.85
    community: float = 0.65
    informal: float = 0.4

    def for_tier(self, tier: SourceTier | str | None) -> float:
        name = tier.value if isinstance(tier, SourceTier) else str(tier or "")
        return getattr(self, name.lower(), self.informal)


class DomainBoosts(BaseModel):
    academic: float = 0.15
    government: float = 0.12
    nonprofit: float = 0.08
    social_media: float = -0.1


class AuthorityConfig(BaseModel):
    tier_weights: TierWeights = TierWeights()
    domain_boosts: DomainBoosts = DomainBoosts()
    domain_rules: tuple[PatternRule, ...] = AUTHORITY_DOMAIN_RULES
    title_rules: tuple[PatternRule, ...] = AUTHORITY_TITLE_RULES
    metadata_rules: tuple[PatternRule, ...] = AUTHORITY_METADATA_RULES


@dataclass
class AuthorityComponents:
    tier_score: float = 0.0
    domain_boost: float = 0.0
    title_boost: float = 0.0
    metadata_boost: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "tier_score": round(self.tier_score, 3),
            "domain_boost": round(self.domain_boost, 3),
            "title_boost": round(self.title_boost, 3),
            "metadata_boost": round(self.metadata_boost, 3),
        }


@dataclass
class AuthorityResult:
    score: float
    tier: str
    domain: str
    components: AuthorityComponents
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "tier": self.tier,
            "domain": self.domain,
            "components": self.components.to_dict(),
            "reasoning": list(self.reasoning),
        }


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


class AuthorityScorer:
    """Scores how credible a source is."""

    def __init__(self, config: Overrides = None):
        self._config = merge_config(component_defaults(AuthorityConfig, "authority"), config)

    def get_config(self) -> AuthorityConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        self._config = merge_config(self._config, overrides)

    def score(self, source: Source) -> AuthorityResult:
        reasoning: list[str] = []
        tier = source.tier.value if isinstance(source.tier, SourceTier) else str(source.tier)
        domain = source.resolved_domain

        tier_score = self._config.tier_weights.for_tier(source.tier)
        reasoning.append(f"Base tier ({tier}): {_pct(tier_score)}")

        components = AuthorityComponents(
            tier_score=tier_score,
            domain_boost=self._domain_boost(source.url or domain, reasoning),
            title_boost=self._title_boost(source.title, reasoning),
            metadata_boost=self._metadata_boost(source, reasoning),
        )
        total = (
            components.tier_score
            + components.domain_boost
            + components.title_boost
            + components.metadata_boost
        )
        final = clamp(total)
        reasoning.append(f"Final authority score: {_pct(final)}")
        return AuthorityResult(score=final, tier=tier, domain=domain, components=components, reasoning=reasoning)

    def _domain_boost(self, location: str, reasoning: list[str]) -> float:
        boosts = self._config.domain_boosts
        boost = 0.0
        matched = {r.category for r in self._config.domain_rules if r.matches(location)}
        for category in ("academic", "government", "nonprofit"):
            if category in matched:
                value = getattr(boosts, category)
                boost = max(boost, value)
                reasoning.append(f"{category.capitalize()} domain boost: +{_pct(value)}")
        if "social_media" in matched:
            boost = boosts.social_media
            reasoning.append(f"Social media penalty: {_pct(boosts.social_media)}")
        return boost

    def _title_boost(self, title: str | None, reasoning: list[str]) -> float:
        if not title:
            return 0.0
        boost = 0.0
        for r in self._config.title_rules:
            if r.matches(title):
                boost += r.weight
                reasoning.append(f"Title {r.category} language: {'+' if r.weight >= 0 else ''}{_pct(r.weight)}")
        return boost

    def _metadata_boost(self, source: Source, reasoning: list[str]) -> float:
        metadata = source.metadata or {}
        author = source.author or metadata.get("author") or metadata.get("byline")
        publication = metadata.get("publication") or metadata.get("source") or metadata.get("publisher")
        content_type = metadata.get("type")
        targets = {
            "author": author if isinstance(author, str) else "",
            "publication": publication if isinstance(publication, str) else "",
            "review": content_type if isinstance(content_type, str) else "",
        }
        flagged_review = bool(
            metadata.get("peer_reviewed") or metadata.get("peerReviewed") or metadata.get("reviewed")
        )

        boost = 0.0
        for r in self._config.metadata_rules:
            # Category prefix names the metadata value the row is tested against.
            target = r.category.split("_", 1)[0]
            text = targets.get(target, "")
            hit = r.matches(text) if text else False
            if target == "review":
                hit = hit or flagged_review
            if hit:
                boost += r.weight
                reasoning.append(f"Metadata {r.category.replace('_', ' ')}: +{_pct(r.weight)}")

        if metadata.get("doi") or metadata.get("isbn") or metadata.get("pmid"):
            boost += 0.03
            reasoning.append("Formal publication identifier: +3.0%")
        return boost
