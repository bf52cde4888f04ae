"""Citation, format and grounding validation."""
from evidence_trust.validation.citation_format import validate_citation_format
from evidence_trust.validation.citation_validator import CitationValidator, CitationValidatorConfig
from evidence_trust.validation.grounding_validator import GroundingValidator, GroundingValidatorConfig
from evidence_trust.validation.models import (
    CitationIssue,
    CitationStatistics,
    CitationSuggestion,
    CitationValidationResult,
    CitationWarning,
    FormatIssue,
    FormatValidationResult,
    GroundingImprovement,
    GroundingValidationResult,
)
from evidence_trust.validation.retry import RetryDecision, RetryState, build_retry_instructions, plan_retry

__all__ = [
    "CitationIssue",
    "CitationStatistics",
    "CitationSuggestion",
    "CitationValidationResult",
    "CitationValidator",
    "CitationValidatorConfig",
    "CitationWarning",
    "FormatIssue",
    "FormatValidationResult",
    "GroundingImprovement",
    "GroundingValidationResult",
    "GroundingValidator",
    "GroundingValidatorConfig",
    "RetryDecision",
    "RetryState",
    "build_retry_instructions",
    "plan_retry",
    "validate_citation_format",
]
