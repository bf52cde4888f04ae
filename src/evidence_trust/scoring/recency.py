"""Time-decay scoring keyed to the detected content type."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel, Field

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config
from evidence_trust.models.evidence import EvidenceUnit, Source
from evidence_trust.scoring.patterns import CONTENT_TYPE_ORDER, RECENCY_RULES, PatternRule, count_matches
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.text import clamp
from evidence_trust.utils.timeutil import Clock, utcnow, whole_days

logger = structlog.get_logger(__name__)


class DecayProfile(BaseModel):
    half_life_days: float = Field(gt=0)
    max_age_days: float = Field(gt=0)
    base_score: float = Field(ge=0.0, le=1.0)


DEFAULT_DECAY = {
    "news": DecayProfile(half_life_days=30, max_age_days=365, base_score=1.0),
    "academic": DecayProfile(half_life_days=365, max_age_days=3650, base_score=0.95),
    "reference": DecayProfile(half_life_days=730, max_age_days=7300, base_score=0.9),
    "historical": DecayProfile(half_life_days=1825, max_age_days=36500, base_score=0.8),
}


class RecencyConfig(BaseModel):
    decay: dict[str, DecayProfile] = Field(default_factory=lambda: dict(DEFAULT_DECAY))
    max_timeless_boost: float = 0.3
    max_factual_boost: float = 0.15
    max_freshness_penalty: float = 0.4
    freshness_grace_days: int = 7
    rules: tuple[PatternRule, ...] = RECENCY_RULES


@dataclass
class RecencyComponents:
    base_score: float = 0.0
    decay_score: float = 0.0
    timeless_boost: float = 0.0
    factual_boost: float = 0.0
    freshness_penalty: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 3) for k, v in vars(self).items()}


@dataclass
class RecencyResult:
    score: float
    content_type: str
    age_days: int
    components: RecencyComponents
    is_timeless: bool = False
    is_freshness_critical: bool = False
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "content_type": self.content_type,
            "age_days": self.age_days,
            "components": self.components.to_dict(),
            "is_timeless": self.is_timeless,
            "is_freshness_critical": self.is_freshness_critical,
            "reasoning": list(self.reasoning),
        }


def _validate(config: RecencyConfig) -> None:
    missing = [t for t in CONTENT_TYPE_ORDER if t not in config.decay]
    if missing:
        raise ConfigurationError("Recency decay table incomplete", details=f"missing: {', '.join(missing)}")


class RecencyScorer:
    """Scores how current a piece of evidence is for its kind of content."""

    def __init__(self, config: Overrides = None, clock: Clock = utcnow):
        config = merge_config(component_defaults(RecencyConfig, "recency"), config)
        _validate(config)
        self._config = config
        self._clock = clock

    def get_config(self) -> RecencyConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config

    def detect_content_type(self, text: str) -> str:
        """Type with the most pattern matches; ties keep the earlier type.

        With no matches at all the type is ``reference``.
        """
        best, best_count = "reference", 0
        for content_type in CONTENT_TYPE_ORDER:
            n = count_matches(text, self._config.rules, content_type)
            if n > best_count:
                best, best_count = content_type, n
        return best

    def time_decay(self, age_days: float, profile: DecayProfile) -> float:
        if age_days >= profile.max_age_days:
            return 0.0
        return profile.base_score * 0.5 ** (age_days / profile.half_life_days)

    def score(self, unit: EvidenceUnit, source: Source) -> RecencyResult:
        cfg = self._config
        reasoning: list[str] = []
        content = unit.text or ""
        classified = " ".join(p for p in (source.title, content, source.url) if p)
        content_type = self.detect_content_type(classified)
        reasoning.append(f"Content type: {content_type}")

        reference_date = source.published_at or source.fetched_at
        if reference_date is None:
            reasoning.append("No publication or fetch date; treated as current")
        age = whole_days(reference_date, self._clock())
        profile = cfg.decay[content_type]

        decay = self.time_decay(age, profile)
        reasoning.append(f"Age {age} days, decay score {decay * 100:.1f}%")

        is_timeless = count_matches(content, cfg.rules, "timeless") > 0
        timeless_boost = min(cfg.max_timeless_boost, cfg.max_timeless_boost * (1 - decay)) if is_timeless else 0.0
        if is_timeless:
            reasoning.append(f"Timeless topic boost: +{timeless_boost * 100:.1f}%")

        factual = count_matches(content, cfg.rules, "factual") > count_matches(content, cfg.rules, "opinion")
        factual_boost = min(cfg.max_factual_boost, cfg.max_factual_boost * (1 - decay)) if factual else 0.0

        is_freshness = count_matches(content, cfg.rules, "freshness") > 0
        penalty = 0.0
        adjusted = decay
        if is_freshness and age > cfg.freshness_grace_days:
            penalty = min(cfg.max_freshness_penalty, (age - cfg.freshness_grace_days) * 0.02)
            adjusted = max(0.0, decay - penalty)
            reasoning.append(f"Stale freshness-critical content: -{penalty * 100:.1f}%")

        final = clamp(adjusted + timeless_boost + factual_boost)
        return RecencyResult(
            score=final,
            content_type=content_type,
            age_days=age,
            components=RecencyComponents(
                base_score=profile.base_score,
                decay_score=decay,
                timeless_boost=timeless_boost,
                factual_boost=factual_boost,
                freshness_penalty=penalty,
            ),
            is_timeless=is_timeless,
            is_freshness_critical=is_freshness,
            reasoning=reasoning,
        )
