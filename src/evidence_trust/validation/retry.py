"""Grounding retry state machine.

``plan_retry`` is a pure transition: given the latest validation result and
the attempt number it decides whether the run has succeeded, failed, or
should retry, and builds the stricter request for the next attempt.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from evidence_trust.models.claims import ExtractionRequest
from evidence_trust.validation.models import GroundingValidationResult

if TYPE_CHECKING:
    from evidence_trust.validation.grounding_validator import GroundingValidatorConfig

DEFAULT_CONFIDENCE_THRESHOLD = 0.7
CONFIDENCE_STEP = 0.1
CONFIDENCE_FLOOR = 0.5
MAX_CITATIONS_PER_SENTENCE = 3
ALIGNMENT_BASE = 0.7
ALIGNMENT_STEP = 0.05
ALIGNMENT_FLOOR = 0.6
MAX_SUMMARIZED_ERRORS = 3


class RetryState(str, Enum):
    VALIDATING = "validating"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RetryDecision:
    state: RetryState
    attempt: int
    next_request: Optional[ExtractionRequest] = None
    citation_overrides: dict[str, Any] = field(default_factory=dict)


def retry_confidence_threshold(request: ExtractionRequest, attempt: int) -> float:
    base = request.constraints.min_confidence_threshold
    if base is None:
        base = DEFAULT_CONFIDENCE_THRESHOLD
    return max(base - CONFIDENCE_STEP * attempt, CONFIDENCE_FLOOR)


def progressive_overrides(attempt: int) -> dict[str, Any]:
    """Citation validator settings for retry ``attempt``."""
    return {
        "min_citations_per_sentence": min(attempt + 1, MAX_CITATIONS_PER_SENTENCE),
        "semantic_alignment_threshold": max(ALIGNMENT_BASE - ALIGNMENT_STEP * attempt, ALIGNMENT_FLOOR),
    }


def summarize_errors(result: GroundingValidationResult) -> list[str]:
    messages = [e.message for e in result.citation_validation.errors]
    messages.extend(e.message for e in result.format_validation.errors)
    return messages


def build_retry_instructions(result: GroundingValidationResult, attempt: int) -> str:
    """Instruction text asking the extractor for stricter attribution."""
    summary = "; ".join(summarize_errors(result)[:MAX_SUMMARIZED_ERRORS]) or "grounding score too low"
    per_sentence = min(attempt + 1, MAX_CITATIONS_PER_SENTENCE)
    return "\n".join([
        f"The previous response failed grounding validation: {summary}",
        "",
        f"Citation requirements for retry attempt {attempt}:",
        f"1. Every sentence must carry at least {per_sentence} citation(s).",
        "2. Place an [evidence_<id>] marker right after the information it supports.",
        "3. State only what the cited evidence says explicitly.",
        '4. When the evidence is insufficient, write "Insufficient evidence" instead of inferring.',
        "",
        'Example: "Jane Doe is a data engineer [evidence_12] at Acme [evidence_13]."',
    ])


def plan_retry(
    result: GroundingValidationResult,
    attempt: int,
    config: GroundingValidatorConfig,
    request: ExtractionRequest,
) -> RetryDecision:
    """Next transition after validating attempt ``attempt`` (0 is the first).

    ``request`` is the original request; each retry is derived from it so
    the confidence threshold steps down from the caller's value.
    """
    if result.is_grounded:
        return RetryDecision(state=RetryState.SUCCEEDED, attempt=attempt)
    if not config.enable_auto_retry or attempt >= config.max_retry_attempts:
        return RetryDecision(state=RetryState.FAILED, attempt=attempt)

    next_attempt = attempt + 1
    constraints = request.constraints.model_copy(update={
        "require_citations": True,
        "min_confidence_threshold": retry_confidence_threshold(request, next_attempt),
    })
    next_request = request.model_copy(update={
        "constraints": constraints,
        "retry_instructions": build_retry_instructions(result, next_attempt),
    })
    overrides = progressive_overrides(next_attempt) if config.progressive_strictness else {}
    return RetryDecision(
        state=RetryState.RETRYING,
        attempt=next_attempt,
        next_request=next_request,
        citation_overrides=overrides,
    )
