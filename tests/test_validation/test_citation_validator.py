"""Tests for CitationValidator."""
from __future__ import annotations

import pytest

from evidence_trust.models.claims import Citation, ClaimField
from evidence_trust.models.evidence import EvidenceContext, EvidenceUnit
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.validation.citation_validator import CitationValidator, strip_markers

CLAIM_TEXT = "Jane Doe leads the data platform team at Acme Corporation"
SECOND_SENTENCE = "She previously worked at Globex Industries in Chicago"


def make_evidence(*pairs: tuple[str, str]) -> list[EvidenceContext]:
    return [EvidenceContext(unit=EvidenceUnit(id=eid, source_id=f"src-{eid}", text=text)) for eid, text in pairs]


def make_claim(
    text: str = CLAIM_TEXT,
    citations: list[Citation] | None = None,
    field_name: str = "job_title",
) -> ClaimField:
    """Create a test ClaimField."""
    return ClaimField(field_name=field_name, text=text, confidence=0.9, citations=citations or [])


def cite(*evidence_ids: str, sentence: int = 0, confidence: float = 0.9) -> Citation:
    return Citation(sentence_index=sentence, evidence_unit_ids=list(evidence_ids), confidence=confidence)


class TestValidCitations:
    """Tests for fully supported claims."""

    def test_aligned_citation_is_valid(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-1")])], evidence)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.statistics.total_citations == 1
        assert result.statistics.valid_citations == 1
        assert result.statistics.average_confidence == pytest.approx(0.9)
        assert result.statistics.evidence_utilization == pytest.approx(100.0)

    def test_inline_markers_do_not_hurt_alignment(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        validator = CitationValidator()
        assert validator.alignment(f"{CLAIM_TEXT} [evidence_ev-1]", ["ev-1"], {"ev-1": CLAIM_TEXT}) == 1.0
        result = validator.validate([make_claim(text=f"{CLAIM_TEXT} [evidence_ev-1]", citations=[cite("ev-1")])], evidence)
        assert result.errors == []

    def test_strip_markers(self):
        assert strip_markers("Led Acme [evidence_ev-9] in 2020").split() == ["Led", "Acme", "in", "2020"]

    def test_utilization_counts_distinct_cited_evidence(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT), ("ev-2", CLAIM_TEXT), ("ev-3", "unrelated"), ("ev-4", "other"))
        claims = [make_claim(citations=[cite("ev-1"), cite("ev-2")]), make_claim(citations=[cite("ev-1")])]
        result = CitationValidator().validate(claims, evidence)
        assert result.statistics.evidence_utilization == pytest.approx(50.0)


class TestCitationErrors:
    """Tests for each citation error type."""

    def test_missing_evidence(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-404")])], evidence)

        assert not result.is_valid
        missing = result.errors_of_type("missing_evidence")
        assert len(missing) == 1
        assert missing[0].evidence_id == "ev-404"
        assert missing[0].severity == "critical"
        assert missing[0].claim_field_id == "job_title"

    def test_low_confidence_does_not_block(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-1", confidence=0.5)])], evidence)

        assert result.is_valid
        low = result.errors_of_type("confidence_too_low")
        assert len(low) == 1 and low[0].severity == "medium"
        assert result.statistics.invalid_citations == 1

    def test_sentence_index_out_of_range(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-1", sentence=3)])], evidence)

        assert not result.is_valid
        assert result.errors_of_type("invalid_format")[0].sentence_index == 3
        # Sentence 0 is then left without a citation.
        assert result.errors_of_type("insufficient_citations")[0].sentence_index == 0

    def test_semantic_mismatch(self):
        evidence = make_evidence(("ev-1", "Quarterly rainfall totals across northern valleys"))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-1")])], evidence)

        mismatch = result.errors_of_type("semantic_mismatch")
        assert len(mismatch) == 1
        assert mismatch[0].details["alignment_score"] == 0.0
        assert result.is_valid

    def test_alignment_check_can_be_disabled(self):
        evidence = make_evidence(("ev-1", "Quarterly rainfall totals across northern valleys"))
        validator = CitationValidator({"require_semantic_alignment": False})
        result = validator.validate([make_claim(citations=[cite("ev-1")])], evidence)
        assert result.errors_of_type("semantic_mismatch") == []

    def test_weak_alignment_warns(self):
        # 9 shared tokens out of 11
        evidence = make_evidence(("ev-1", f"{CLAIM_TEXT} in Boston today"))
        result = CitationValidator().validate([make_claim(citations=[cite("ev-1")])], evidence)
        assert result.errors == []
        assert [w.type for w in result.warnings] == ["weak_alignment"]


class TestCitationDensity:
    """Tests for per-sentence citation counts."""

    def test_uncited_sentence_gets_suggestion(self):
        evidence = make_evidence(
            ("ev-1", CLAIM_TEXT),
            ("ev-2", "Jane Doe previously worked at Globex Industries in Chicago as an analyst"),
        )
        claim = make_claim(text=f"{CLAIM_TEXT}. {SECOND_SENTENCE}.", citations=[cite("ev-1")])
        result = CitationValidator().validate([claim], evidence)

        assert not result.is_valid
        insufficient = result.errors_of_type("insufficient_citations")
        assert [e.sentence_index for e in insufficient] == [1]
        assert insufficient[0].severity == "high"
        assert len(result.suggestions) == 1
        assert result.suggestions[0].sentence_index == 1
        assert result.suggestions[0].suggested_evidence_ids == ["ev-2"]

    def test_partial_citations_allowed(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT))
        claim = make_claim(text=f"{CLAIM_TEXT}. {SECOND_SENTENCE}.", citations=[cite("ev-1")])
        result = CitationValidator({"allow_partial_citations": True}).validate([claim], evidence)

        assert result.is_valid
        assert result.errors_of_type("insufficient_citations")[0].severity == "medium"

    def test_redundant_citations_warn(self):
        ids = ["ev-1", "ev-2", "ev-3", "ev-4"]
        evidence = make_evidence(*[(eid, CLAIM_TEXT) for eid in ids])
        result = CitationValidator().validate([make_claim(citations=[cite(eid) for eid in ids])], evidence)

        assert result.is_valid
        assert [w.type for w in result.warnings] == ["redundant_citations"]

    def test_potential_evidence_excludes_cited(self):
        evidence = make_evidence(("ev-1", CLAIM_TEXT), ("ev-2", CLAIM_TEXT), ("ev-3", "nothing in common here"))
        candidates = CitationValidator().potential_evidence(CLAIM_TEXT, evidence, exclude={"ev-1"})
        assert [eid for eid, _ in candidates] == ["ev-2"]


class TestConfig:
    """Tests for validator configuration."""

    def test_max_below_min_rejected(self):
        with pytest.raises(ConfigurationError):
            CitationValidator({"min_citations_per_sentence": 4})

    def test_copy_is_independent(self):
        validator = CitationValidator()
        clone = validator.copy()
        clone.update_config({"min_citations_per_sentence": 2})
        assert validator.get_config().min_citations_per_sentence == 1
        assert clone.get_config().min_citations_per_sentence == 2
