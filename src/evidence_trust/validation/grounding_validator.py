"""Grounding validation with automatic re-extraction.

A response is grounded when its weighted grounding score (citation quality,
marker format compliance, evidence utilization and citation confidence)
reaches ``min_grounding_score``. ``validate_with_auto_retry`` drives the
extraction collaborator through the retry state machine in ``retry``.
"""
from __future__ import annotations

import time
from concurrent import futures
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config, validate_weights
from evidence_trust.models.claims import (
    ClaimField,
    ExtractionClient,
    ExtractionRequest,
    ExtractionResponse,
)
from evidence_trust.models.evidence import EvidenceContext
from evidence_trust.utils.errors import ExtractionError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import clamp
from evidence_trust.validation.citation_format import DEFAULT_MARKER_PATTERN, validate_citation_format
from evidence_trust.validation.citation_validator import CitationValidator
from evidence_trust.validation.models import (
    CitationStatistics,
    CitationValidationResult,
    FormatValidationResult,
    GroundingImprovement,
    GroundingValidationResult,
)
from evidence_trust.validation.retry import RetryState, plan_retry

logger = structlog.get_logger(__name__)

CRITICAL_ERROR_PENALTY = 0.3
HIGH_ERROR_PENALTY = 0.2
FULL_UTILIZATION_PERCENT = 80.0
STRONG_CLAIM_CONFIDENCE = 0.8
STRONG_CLAIM_CITATIONS = 2


class GroundingWeights(BaseModel):
    citation_quality: float = 0.4
    format_compliance: float = 0.2
    evidence_utilization: float = 0.2
    citation_confidence: float = 0.2


class GroundingValidatorConfig(BaseModel):
    max_retry_attempts: int = Field(default=3, ge=0)
    progressive_strictness: bool = True
    min_grounding_score: float = Field(default=0.8, ge=0.0, le=1.0)
    enable_auto_retry: bool = True
    validation_timeout_seconds: float = Field(default=30, gt=0)
    validate_citation_format: bool = True
    min_format_compliance: float = Field(default=0.9, ge=0.0, le=1.0)
    citation_pattern: str = DEFAULT_MARKER_PATTERN
    weights: GroundingWeights = GroundingWeights()


def _validate(config: GroundingValidatorConfig) -> None:
    validate_weights(config.weights.model_dump(), "grounding")


class GroundingValidator:
    """Scores how well an extraction response is grounded in its evidence."""

    def __init__(
        self,
        config: Overrides = None,
        citation_config: Overrides = None,
        similarity: SimilarityBackend = DEFAULT_SIMILARITY,
    ):
        config = merge_config(component_defaults(GroundingValidatorConfig, "grounding_validator"), config)
        _validate(config)
        self._config = config
        self.citation_validator = CitationValidator(citation_config, similarity=similarity)

    def get_config(self) -> GroundingValidatorConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config

    def validate_format(self, claims: list[ClaimField]) -> FormatValidationResult:
        if not self._config.validate_citation_format:
            return FormatValidationResult(is_valid=True)
        return validate_citation_format(
            claims,
            pattern=self._config.citation_pattern,
            min_compliance=self._config.min_format_compliance,
        )

    def validate(
        self,
        response: ExtractionResponse,
        request: ExtractionRequest,
        evidence: list[EvidenceContext],
        citation_validator: CitationValidator | None = None,
    ) -> GroundingValidationResult:
        start = time.perf_counter()
        validator = citation_validator or self.citation_validator
        citation_result = validator.validate(response.claims, evidence)
        format_result = self.validate_format(response.claims)
        score = self.grounding_score(citation_result, format_result)

        result = GroundingValidationResult(
            is_grounded=score >= self._config.min_grounding_score,
            grounding_score=score,
            citation_validation=citation_result,
            format_validation=format_result,
            validation_time_ms=(time.perf_counter() - start) * 1000,
            improvements=self.improvements(citation_result, format_result, response.claims),
            retry_instructions=request.retry_instructions,
        )
        logger.debug(
            "grounding_validated",
            persona_id=request.persona_id,
            score=round(score, 3),
            is_grounded=result.is_grounded,
        )
        return result

    def grounding_score(
        self, citation_result: CitationValidationResult, format_result: FormatValidationResult
    ) -> float:
        weights = self._config.weights
        stats: CitationStatistics = citation_result.statistics
        critical = citation_result.count_errors("critical")
        high = citation_result.count_errors("high")
        quality = max(0.0, 1 - (critical * CRITICAL_ERROR_PENALTY + high * HIGH_ERROR_PENALTY))
        utilization = min(stats.evidence_utilization / FULL_UTILIZATION_PERCENT, 1.0)
        return clamp(
            weights.citation_quality * quality
            + weights.format_compliance * format_result.format_compliance
            + weights.evidence_utilization * utilization
            + weights.citation_confidence * stats.average_confidence
        )

    @staticmethod
    def improvements(
        citation_result: CitationValidationResult,
        format_result: FormatValidationResult,
        claims: list[ClaimField],
    ) -> list[GroundingImprovement]:
        found: list[GroundingImprovement] = []
        for error in citation_result.errors:
            if not error.claim_field_id:
                continue
            if error.type == "insufficient_citations":
                found.append(GroundingImprovement(
                    type="add_citation",
                    description=f'Add more citations to strengthen claim "{error.claim_field_id}"',
                    impact="high",
                    claim_field_id=error.claim_field_id,
                    implementation="Include additional evidence references with proper [evidence_id] format",
                ))
            elif error.type == "semantic_mismatch":
                found.append(GroundingImprovement(
                    type="improve_alignment",
                    description="Improve semantic alignment between claim and evidence",
                    impact="medium",
                    claim_field_id=error.claim_field_id,
                    implementation="Use evidence that more directly supports the specific claim being made",
                ))

        for error in format_result.errors:
            if error.type == "missing_citation_marker":
                found.append(GroundingImprovement(
                    type="add_citation",
                    description="Add missing citation markers in claim text",
                    impact="high",
                    claim_field_id=error.claim_field_id or "format_compliance",
                    implementation="Ensure every claim sentence includes [evidence_id] citations",
                ))

        for claim in claims:
            if claim.confidence < STRONG_CLAIM_CONFIDENCE and len(claim.citations) < STRONG_CLAIM_CITATIONS:
                found.append(GroundingImprovement(
                    type="strengthen_evidence",
                    description=f'Strengthen low-confidence claim "{claim.field_name}" with additional evidence',
                    impact="medium",
                    claim_field_id=claim.field_name,
                    implementation="Find additional supporting evidence or split into multiple more specific claims",
                ))
        return found

    def validate_with_auto_retry(
        self,
        response: ExtractionResponse,
        request: ExtractionRequest,
        evidence: list[EvidenceContext],
        client: ExtractionClient,
    ) -> GroundingValidationResult:
        """Validate, re-extracting with stricter requests until grounded or out of retries.

        Always returns a result: the last completed validation, carrying the
        attempt count and the terminal state.
        """
        # Progressive strictness must not leak into later runs.
        validator = self.citation_validator.copy()
        timeout = self._config.validation_timeout_seconds
        current_response = response
        current_request = request
        attempt = 0
        last: Optional[GroundingValidationResult] = None

        executor = futures.ThreadPoolExecutor(max_workers=1)
        try:
            while True:
                future = executor.submit(self.validate, current_response, current_request, evidence, validator)
                try:
                    result = future.result(timeout=timeout)
                except futures.TimeoutError:
                    logger.warning("grounding_validation_timed_out", attempt=attempt, timeout_seconds=timeout)
                    return self._timed_out(last, attempt)

                decision = plan_retry(result, attempt, self._config, request)
                result = result.model_copy(update={"retry_attempts": attempt, "final_state": decision.state.value})
                last = result
                if decision.state is not RetryState.RETRYING:
                    logger.info(
                        "grounding_run_finished",
                        state=decision.state.value,
                        attempts=attempt,
                        score=round(result.grounding_score, 3),
                    )
                    return result

                if decision.citation_overrides:
                    validator.update_config(decision.citation_overrides)
                logger.info("grounding_retry_started", attempt=decision.attempt, score=round(result.grounding_score, 3))
                try:
                    current_response = self._extract(client, decision.next_request)
                except ExtractionError as exc:
                    logger.warning("grounding_retry_failed", attempt=decision.attempt, error=exc.message)
                    return result.model_copy(update={
                        "final_state": RetryState.FAILED.value,
                        "extraction_errors": [exc.message, *([exc.details] if exc.details else [])],
                    })
                current_request = decision.next_request
                attempt = decision.attempt
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _extract(client: ExtractionClient, request: ExtractionRequest) -> ExtractionResponse:
        try:
            response = client.extract(request)
        except Exception as exc:
            raise ExtractionError("Extraction request failed", details=str(exc)) from exc
        if not response.success:
            raise ExtractionError("Extraction returned an unsuccessful response", details="; ".join(response.errors))
        return response

    @staticmethod
    def _timed_out(last: Optional[GroundingValidationResult], attempt: int) -> GroundingValidationResult:
        if last is not None:
            return last.model_copy(update={"timed_out": True, "final_state": RetryState.FAILED.value})
        return GroundingValidationResult(
            is_grounded=False,
            grounding_score=0.0,
            citation_validation=CitationValidationResult(is_valid=False),
            format_validation=FormatValidationResult(is_valid=False, format_compliance=0.0),
            retry_attempts=attempt,
            final_state=RetryState.FAILED.value,
            timed_out=True,
        )
