"""Evidence and provenance inputs supplied by the extraction pipeline."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from evidence_trust.utils.text import count_sentences, count_words, ends_complete, starts_complete


class SourceTier(str, Enum):
    CANONICAL = "CANONICAL"
    REPUTABLE = "REPUTABLE"
    COMMUNITY = "COMMUNITY"
    INFORMAL = "INFORMAL"


class Source(BaseModel):
    """Provenance of an evidence unit."""
    id: str
    tier: SourceTier = SourceTier.INFORMAL
    url: str | None = None
    domain: str | None = None
    title: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    fetched_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def resolved_domain(self) -> str:
        """Explicit domain, else the url hostname, else ``"unknown"``."""
        if self.domain:
            return self.domain.lower()
        if self.url:
            try:
                host = urlparse(self.url).hostname
            except ValueError:
                host = None
            if host:
                return host.lower()
        return "unknown"


class EvidenceUnit(BaseModel):
    """A scored snippet of source text."""
    id: str
    source_id: str
    text: str
    start_index: int = Field(default=0, ge=0)
    end_index: int = Field(default=0, ge=0)
    quality_score: float | None = Field(default=None, ge=0.0, le=1.0)
    topics: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    # Optional segmentation facts; derived from text when absent.
    word_count: int | None = Field(default=None, ge=0)
    sentence_count: int | None = Field(default=None, ge=0)
    has_complete_start: bool | None = None
    has_complete_end: bool | None = None

    def words(self) -> int:
        return self.word_count if self.word_count is not None else count_words(self.text)

    def sentences(self) -> int:
        return self.sentence_count if self.sentence_count is not None else count_sentences(self.text)

    def complete_start(self) -> bool:
        return self.has_complete_start if self.has_complete_start is not None else starts_complete(self.text)

    def complete_end(self) -> bool:
        return self.has_complete_end if self.has_complete_end is not None else ends_complete(self.text)


class SourcedEvidence(BaseModel):
    """An evidence unit paired with its source."""
    unit: EvidenceUnit
    source: Source

    @property
    def id(self) -> str:
        return self.unit.id

    @property
    def domain(self) -> str:
        return self.source.resolved_domain

    @property
    def published_at(self) -> datetime | None:
        return self.source.published_at or self.source.fetched_at


class RelevanceTarget(BaseModel):
    """What the caller wants evidence to be relevant to."""
    topics: list[str] = Field(default_factory=list)
    persona_fields: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    context: str | None = None


class QualityRequest(SourcedEvidence):
    """Input to QualityEngine.assess."""
    related_evidence: list[SourcedEvidence] | None = None
    relevance_target: RelevanceTarget | None = None


class EvidenceContext(BaseModel):
    """Evidence as seen by confidence scoring and citation validation."""
    unit: EvidenceUnit
    source: Source | None = None
    quality_score: float | None = Field(default=None, ge=0.0, le=1.0)
    topics: list[str] = Field(default_factory=list)
    relevance_score: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def id(self) -> str:
        return self.unit.id

    @property
    def text(self) -> str:
        return self.unit.text

    @property
    def effective_quality(self) -> float:
        if self.quality_score is not None:
            return self.quality_score
        return self.unit.quality_score or 0.0
