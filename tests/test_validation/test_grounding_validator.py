"""Tests for GroundingValidator and the auto-retry loop."""
from __future__ import annotations

import time

import pytest

from evidence_trust.models.claims import Citation, ClaimField, ExtractionRequest, ExtractionResponse
from evidence_trust.models.evidence import EvidenceContext, EvidenceUnit
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.validation.grounding_validator import GroundingValidator

CLAIM_TEXT = "Jane Doe leads the data platform team at Acme Corporation"


def make_evidence(*ids: str) -> list[EvidenceContext]:
    return [EvidenceContext(unit=EvidenceUnit(id=eid, source_id=f"src-{eid}", text=CLAIM_TEXT)) for eid in ids]


def make_response(text: str = CLAIM_TEXT, cited: tuple[str, ...] = ("ev-1",), confidence: float = 0.9) -> ExtractionResponse:
    """Create a one-claim ExtractionResponse citing ``cited`` from sentence 0."""
    claim = ClaimField(
        field_name="job_title",
        text=text,
        confidence=confidence,
        citations=[Citation(sentence_index=0, evidence_unit_ids=[eid], confidence=0.9) for eid in cited],
    )
    return ExtractionResponse(success=True, claims=[claim])


def grounded_response() -> ExtractionResponse:
    return make_response(text=f"{CLAIM_TEXT} [evidence_ev-1] [evidence_ev-2]", cited=("ev-1", "ev-2"))


class FakeClient:
    """Extraction client returning queued responses and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[ExtractionRequest] = []

    def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class SlowSimilarity:
    def __init__(self, delay: float):
        self.delay = delay

    def similarity(self, text_a: str, text_b: str) -> float:
        time.sleep(self.delay)
        return 1.0


class TestValidate:
    """Tests for single-pass validation."""

    def test_structural_citation_without_marker_is_not_grounded(self):
        evidence = make_evidence("ev-1")
        result = GroundingValidator().validate(make_response(), ExtractionRequest(), evidence)

        assert result.citation_validation.is_valid
        assert not result.format_validation.is_valid
        # 0.4 * 1 + 0.2 * 0 + 0.2 * 1 + 0.2 * 0.9
        assert result.grounding_score == pytest.approx(0.78)
        assert not result.is_grounded
        assert "add_citation" in [i.type for i in result.improvements]

    def test_marked_citations_are_grounded(self):
        evidence = make_evidence("ev-1", "ev-2")
        result = GroundingValidator().validate(grounded_response(), ExtractionRequest(), evidence)

        assert result.format_validation.is_valid
        assert result.grounding_score == pytest.approx(0.98)
        assert result.is_grounded

    def test_missing_evidence_penalizes_citation_quality(self):
        response = make_response(text=f"{CLAIM_TEXT} [evidence_ev-9]", cited=("ev-9",))
        result = GroundingValidator().validate(response, ExtractionRequest(), make_evidence("ev-1"))

        assert result.citation_validation.count_errors("critical") == 1
        # quality 0.7, full format, nothing utilized, confidence 0.9
        assert result.grounding_score == pytest.approx(0.28 + 0.2 + 0.0 + 0.18)

    def test_format_check_can_be_disabled(self):
        validator = GroundingValidator({"validate_citation_format": False})
        result = validator.validate(make_response(), ExtractionRequest(), make_evidence("ev-1"))
        assert result.format_validation.is_valid
        assert result.is_grounded

    def test_weak_claims_get_strengthen_improvement(self):
        response = make_response(confidence=0.5)
        result = GroundingValidator().validate(response, ExtractionRequest(), make_evidence("ev-1"))
        strengthen = [i for i in result.improvements if i.type == "strengthen_evidence"]
        assert [i.claim_field_id for i in strengthen] == ["job_title"]

    def test_invalid_weights_rejected(self):
        with pytest.raises(ConfigurationError):
            GroundingValidator({"weights": {"citation_quality": 0.9}})


class TestAutoRetry:
    """Tests for validate_with_auto_retry."""

    def test_already_grounded_needs_no_retry(self):
        client = FakeClient(grounded_response())
        result = GroundingValidator().validate_with_auto_retry(
            grounded_response(), ExtractionRequest(), make_evidence("ev-1", "ev-2"), client
        )
        assert result.is_grounded
        assert result.final_state == "succeeded"
        assert result.retry_attempts == 0
        assert client.requests == []

    def test_retry_until_grounded(self):
        validator = GroundingValidator()
        client = FakeClient(grounded_response())
        result = validator.validate_with_auto_retry(
            make_response(), ExtractionRequest(persona_id="p-1"), make_evidence("ev-1", "ev-2"), client
        )

        assert result.is_grounded
        assert result.final_state == "succeeded"
        assert result.retry_attempts == 1
        assert len(client.requests) == 1
        retry_request = client.requests[0]
        assert retry_request.persona_id == "p-1"
        assert retry_request.retry_instructions
        assert retry_request.constraints.min_confidence_threshold == pytest.approx(0.6)
        # Stricter settings apply to the run, not to the validator.
        assert validator.citation_validator.get_config().min_citations_per_sentence == 1

    def test_gives_up_after_max_attempts(self):
        client = FakeClient(make_response())
        result = GroundingValidator({"max_retry_attempts": 3}).validate_with_auto_retry(
            make_response(), ExtractionRequest(), make_evidence("ev-1", "ev-2"), client
        )

        assert not result.is_grounded
        assert result.final_state == "failed"
        assert result.retry_attempts == 3
        assert len(client.requests) == 3
        assert result.citation_validation.errors_of_type("insufficient_citations")

    def test_auto_retry_disabled(self):
        client = FakeClient(grounded_response())
        result = GroundingValidator({"enable_auto_retry": False}).validate_with_auto_retry(
            make_response(), ExtractionRequest(), make_evidence("ev-1"), client
        )
        assert result.final_state == "failed"
        assert result.retry_attempts == 0
        assert client.requests == []

    def test_client_exception_ends_run(self):
        client = FakeClient(RuntimeError("service unavailable"))
        result = GroundingValidator().validate_with_auto_retry(
            make_response(), ExtractionRequest(), make_evidence("ev-1"), client
        )
        assert result.final_state == "failed"
        assert result.extraction_errors == ["Extraction request failed", "service unavailable"]
        assert result.retry_attempts == 0

    def test_unsuccessful_response_ends_run(self):
        client = FakeClient(ExtractionResponse(success=False, errors=["quota exceeded"]))
        result = GroundingValidator().validate_with_auto_retry(
            make_response(), ExtractionRequest(), make_evidence("ev-1"), client
        )
        assert result.final_state == "failed"
        assert result.extraction_errors == ["Extraction returned an unsuccessful response", "quota exceeded"]

    def test_timeout_returns_failed_result(self):
        validator = GroundingValidator({"validation_timeout_seconds": 0.05}, similarity=SlowSimilarity(0.5))
        client = FakeClient(grounded_response())
        result = validator.validate_with_auto_retry(
            make_response(), ExtractionRequest(), make_evidence("ev-1"), client
        )

        assert result.timed_out
        assert result.final_state == "failed"
        assert not result.is_grounded
        assert result.grounding_score == 0.0
        assert client.requests == []
