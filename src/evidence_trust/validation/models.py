"""Pydantic models for citation, format and grounding validation output."""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Severity = Literal["critical", "high", "medium", "low"]
BLOCKING_SEVERITIES = ("critical", "high")


class CitationIssue(BaseModel):
    """Citation problem found on one claim."""
    type: Literal[
        "missing_evidence",
        "insufficient_citations",
        "invalid_format",
        "semantic_mismatch",
        "confidence_too_low",
    ]
    message: str
    severity: Severity
    claim_field_id: Optional[str] = None
    sentence_index: Optional[int] = None
    evidence_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class CitationWarning(BaseModel):
    """Non-blocking citation observation."""
    type: Literal["redundant_citations", "low_confidence", "weak_alignment", "citation_density"]
    message: str
    claim_field_id: Optional[str] = None
    sentence_index: Optional[int] = None
    suggestion: Optional[str] = None


class CitationSuggestion(BaseModel):
    type: Literal["add_citation", "remove_citation", "improve_alignment", "split_sentence"]
    message: str
    claim_field_id: str
    sentence_index: int
    suggested_evidence_ids: list[str] = Field(default_factory=list)
    confidence: Optional[float] = None


class CitationStatistics(BaseModel):
    total_claims: int = 0
    total_sentences: int = 0
    total_citations: int = 0
    average_citations_per_sentence: float = 0.0
    average_confidence: float = 0.0
    evidence_utilization: float = 0.0  # percent of the evidence set cited
    valid_citations: int = 0
    invalid_citations: int = 0


class CitationValidationResult(BaseModel):
    is_valid: bool
    errors: list[CitationIssue] = Field(default_factory=list)
    warnings: list[CitationWarning] = Field(default_factory=list)
    statistics: CitationStatistics = Field(default_factory=CitationStatistics)
    suggestions: list[CitationSuggestion] = Field(default_factory=list)

    def count_errors(self, *severities: str) -> int:
        return sum(1 for e in self.errors if e.severity in severities)

    def errors_of_type(self, error_type: str) -> list[CitationIssue]:
        return [e for e in self.errors if e.type == error_type]


class FormatIssue(BaseModel):
    """Inline citation marker problem."""
    type: Literal[
        "missing_citation_marker",
        "invalid_citation_format",
        "malformed_evidence_id",
        "duplicate_citation",
    ]
    message: str
    position: int = 0
    text: str = ""
    claim_field_id: Optional[str] = None
    suggestion: Optional[str] = None


class FormatValidationResult(BaseModel):
    is_valid: bool
    errors: list[FormatIssue] = Field(default_factory=list)
    citations_found: int = 0
    citations_expected: int = 0
    format_compliance: float = 1.0


class GroundingImprovement(BaseModel):
    type: Literal["add_citation", "improve_alignment", "split_claim", "strengthen_evidence"]
    description: str
    impact: Literal["low", "medium", "high"]
    claim_field_id: str
    implementation: str


class GroundingValidationResult(BaseModel):
    """Outcome of one grounding validation, or of a whole retry run."""
    is_grounded: bool
    grounding_score: float = Field(ge=0.0, le=1.0)
    citation_validation: CitationValidationResult
    format_validation: FormatValidationResult
    retry_attempts: int = 0
    validation_time_ms: float = 0.0
    improvements: list[GroundingImprovement] = Field(default_factory=list)
    final_state: Optional[str] = None
    retry_instructions: Optional[str] = None
    timed_out: bool = False
    extraction_errors: list[str] = Field(default_factory=list)
