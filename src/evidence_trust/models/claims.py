"""Claims, citations and the extraction collaborator contract."""
from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from evidence_trust.models.evidence import EvidenceContext, EvidenceUnit


class Citation(BaseModel):
    """Link from one sentence of a claim to supporting evidence."""
    sentence_index: int = Field(ge=0)
    evidence_unit_ids: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    support_type: Literal["direct", "inferential", "contextual"] = "direct"


class ConflictFlag(BaseModel):
    type: str
    description: str = ""
    conflicting_evidence_ids: list[str] = Field(default_factory=list)
    severity: Literal["low", "medium", "high"] = "medium"


class ClaimField(BaseModel):
    """One extracted fact about the subject."""
    field_name: str
    text: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    citations: list[Citation] = Field(default_factory=list)
    conflict_flags: list[ConflictFlag] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def cited_evidence_ids(self) -> set[str]:
        return {eid for c in self.citations for eid in c.evidence_unit_ids}


class ExtractionConstraints(BaseModel):
    require_citations: bool = True
    conflict_handling: Literal["flag", "choose_best", "synthesize"] = "flag"
    max_claim_length: int | None = Field(default=None, ge=1)
    min_confidence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class ExtractionRequest(BaseModel):
    """Request handed to the extraction collaborator."""
    evidence_units: list[EvidenceUnit] = Field(default_factory=list)
    extraction_type: Literal["full", "specific_field"] = "full"
    field_name: str | None = None
    constraints: ExtractionConstraints = Field(default_factory=ExtractionConstraints)
    persona_id: str | None = None
    project_id: str = ""
    retry_instructions: str | None = None


class ExtractionMetadata(BaseModel):
    tokens_used: int = 0
    processing_time_ms: float = 0.0
    evidence_units_processed: int = 0
    citation_accuracy: float | None = None
    overall_confidence: float = 0.0


class ExtractionResponse(BaseModel):
    success: bool
    claims: list[ClaimField] = Field(default_factory=list)
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


@runtime_checkable
class ExtractionClient(Protocol):
    """The generative extraction service, seen from the grounding loop."""

    def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        ...


class PersonaClaims(BaseModel):
    """One persona's claims with the evidence they were extracted from."""
    id: str
    claims: list[ClaimField] = Field(default_factory=list)
    evidence: list[EvidenceContext] = Field(default_factory=list)
