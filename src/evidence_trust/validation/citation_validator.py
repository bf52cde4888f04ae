"""Citation validation.

Checks that every sentence of every claim is attributed to evidence that
exists, is cited with enough confidence and actually says something close
to the sentence. Problems come back as structured issues; nothing here
raises for a bad claim.
"""
from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, Field

from evidence_trust.config.loader import component_defaults
from evidence_trust.config.merge import Overrides, merge_config
from evidence_trust.models.claims import Citation, ClaimField
from evidence_trust.models.evidence import EvidenceContext
from evidence_trust.utils.errors import ConfigurationError
from evidence_trust.utils.similarity import DEFAULT_SIMILARITY, SimilarityBackend
from evidence_trust.utils.text import split_sentences
from evidence_trust.validation.models import (
    BLOCKING_SEVERITIES,
    CitationIssue,
    CitationStatistics,
    CitationSuggestion,
    CitationValidationResult,
    CitationWarning,
)

logger = structlog.get_logger(__name__)

# Inline markers are not part of what a sentence asserts.
_INLINE_MARKER = re.compile(r"\[evidence_[^\[\]]*\]")


class CitationValidatorConfig(BaseModel):
    min_citations_per_sentence: int = Field(default=1, ge=0)
    max_citations_per_sentence: int = Field(default=3, ge=1)
    min_citation_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    require_semantic_alignment: bool = True
    semantic_alignment_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    weak_alignment_margin: float = Field(default=0.1, ge=0.0)
    allow_partial_citations: bool = False
    suggestion_similarity_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    max_suggestions: int = Field(default=2, ge=1)


def _validate(config: CitationValidatorConfig) -> None:
    if config.max_citations_per_sentence < config.min_citations_per_sentence:
        raise ConfigurationError(
            "max_citations_per_sentence must be >= min_citations_per_sentence",
            details=f"min={config.min_citations_per_sentence} max={config.max_citations_per_sentence}",
        )


def strip_markers(text: str) -> str:
    return _INLINE_MARKER.sub(" ", text)


class CitationValidator:
    """Validates claim citations against a set of evidence."""

    def __init__(self, config: Overrides = None, similarity: SimilarityBackend = DEFAULT_SIMILARITY):
        config = merge_config(component_defaults(CitationValidatorConfig, "citation_validator"), config)
        _validate(config)
        self._config = config
        self._similarity = similarity

    def get_config(self) -> CitationValidatorConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, overrides: Overrides) -> None:
        config = merge_config(self._config, overrides)
        _validate(config)
        self._config = config

    def copy(self) -> CitationValidator:
        """Independent validator with the same settings and backend."""
        return CitationValidator(self._config, similarity=self._similarity)

    def validate(self, claims: list[ClaimField], evidence: list[EvidenceContext]) -> CitationValidationResult:
        config = self._config
        texts = {ctx.id: ctx.text for ctx in evidence}
        errors: list[CitationIssue] = []
        warnings: list[CitationWarning] = []
        suggestions: list[CitationSuggestion] = []
        stats = CitationStatistics(total_claims=len(claims))
        confidence_total = 0.0

        for claim in claims:
            sentences = split_sentences(claim.text)
            self._check_citations(claim, sentences, texts, errors, warnings)
            self._check_density(claim, sentences, evidence, errors, warnings, suggestions)

            stats.total_sentences += len(sentences)
            stats.total_citations += len(claim.citations)
            for citation in claim.citations:
                if citation.confidence >= config.min_citation_confidence:
                    stats.valid_citations += 1
                else:
                    stats.invalid_citations += 1
                confidence_total += citation.confidence

        if stats.total_sentences:
            stats.average_citations_per_sentence = stats.total_citations / stats.total_sentences
        if stats.total_citations:
            stats.average_confidence = confidence_total / stats.total_citations
        stats.evidence_utilization = self._utilization(claims, texts)

        result = CitationValidationResult(
            is_valid=not any(e.severity in BLOCKING_SEVERITIES for e in errors),
            errors=errors,
            warnings=warnings,
            statistics=stats,
            suggestions=suggestions,
        )
        logger.debug(
            "citations_validated",
            claims=stats.total_claims,
            citations=stats.total_citations,
            errors=len(errors),
            is_valid=result.is_valid,
        )
        return result

    def alignment(self, sentence: str, evidence_ids: list[str], texts: dict[str, str]) -> float:
        """Best similarity between ``sentence`` and any of the cited snippets."""
        snippets = [texts[eid] for eid in evidence_ids if eid in texts]
        if not snippets:
            return 0.0
        plain = strip_markers(sentence)
        return max(self._similarity.similarity(plain, snippet) for snippet in snippets)

    def _check_citations(
        self,
        claim: ClaimField,
        sentences: list[str],
        texts: dict[str, str],
        errors: list[CitationIssue],
        warnings: list[CitationWarning],
    ) -> None:
        config = self._config
        for citation in claim.citations:
            for evidence_id in citation.evidence_unit_ids:
                if evidence_id not in texts:
                    errors.append(CitationIssue(
                        type="missing_evidence",
                        message=f"Referenced evidence ID '{evidence_id}' not found in provided evidence units",
                        severity="critical",
                        claim_field_id=claim.field_name,
                        sentence_index=citation.sentence_index,
                        evidence_id=evidence_id,
                    ))

            if citation.sentence_index >= len(sentences):
                errors.append(CitationIssue(
                    type="invalid_format",
                    message=(
                        f"Citation sentence index {citation.sentence_index} exceeds "
                        f"claim sentence count {len(sentences)}"
                    ),
                    severity="high",
                    claim_field_id=claim.field_name,
                    sentence_index=citation.sentence_index,
                ))
                continue

            if citation.confidence < config.min_citation_confidence:
                errors.append(CitationIssue(
                    type="confidence_too_low",
                    message=(
                        f"Citation confidence {citation.confidence:.3f} below minimum "
                        f"threshold {config.min_citation_confidence}"
                    ),
                    severity="medium",
                    claim_field_id=claim.field_name,
                    sentence_index=citation.sentence_index,
                    details={"confidence": citation.confidence, "threshold": config.min_citation_confidence},
                ))

            if config.require_semantic_alignment:
                self._check_alignment(claim, citation, sentences[citation.sentence_index], texts, errors, warnings)

    def _check_alignment(
        self,
        claim: ClaimField,
        citation: Citation,
        sentence: str,
        texts: dict[str, str],
        errors: list[CitationIssue],
        warnings: list[CitationWarning],
    ) -> None:
        threshold = self._config.semantic_alignment_threshold
        score = self.alignment(sentence, citation.evidence_unit_ids, texts)
        if score < threshold:
            errors.append(CitationIssue(
                type="semantic_mismatch",
                message=f"Weak semantic alignment between sentence and cited evidence ({score:.3f} < {threshold})",
                severity="medium",
                claim_field_id=claim.field_name,
                sentence_index=citation.sentence_index,
                details={"alignment_score": score, "threshold": threshold},
            ))
        elif score < threshold + self._config.weak_alignment_margin:
            warnings.append(CitationWarning(
                type="weak_alignment",
                message=f"Semantic alignment is acceptable but could be stronger ({score:.3f})",
                claim_field_id=claim.field_name,
                sentence_index=citation.sentence_index,
                suggestion="Consider using more directly relevant evidence",
            ))

    def _check_density(
        self,
        claim: ClaimField,
        sentences: list[str],
        evidence: list[EvidenceContext],
        errors: list[CitationIssue],
        warnings: list[CitationWarning],
        suggestions: list[CitationSuggestion],
    ) -> None:
        config = self._config
        for index, sentence in enumerate(sentences):
            cited = [c for c in claim.citations if c.sentence_index == index]
            if len(cited) < config.min_citations_per_sentence:
                errors.append(CitationIssue(
                    type="insufficient_citations",
                    message=(
                        f"Sentence {index} has {len(cited)} citations, minimum required: "
                        f"{config.min_citations_per_sentence}"
                    ),
                    # Partial citation mode reports the gap without blocking.
                    severity="medium" if config.allow_partial_citations else "high",
                    claim_field_id=claim.field_name,
                    sentence_index=index,
                ))
                already = {eid for c in cited for eid in c.evidence_unit_ids}
                candidates = self.potential_evidence(sentence, evidence, exclude=already)
                if candidates:
                    top = candidates[: config.max_suggestions]
                    suggestions.append(CitationSuggestion(
                        type="add_citation",
                        message=f"Consider adding citations to sentence {index}",
                        claim_field_id=claim.field_name,
                        sentence_index=index,
                        suggested_evidence_ids=[eid for eid, _ in top],
                        confidence=max(score for _, score in top),
                    ))
            elif len(cited) > config.max_citations_per_sentence:
                warnings.append(CitationWarning(
                    type="redundant_citations",
                    message=f"Sentence {index} has {len(cited)} citations, which may be excessive",
                    claim_field_id=claim.field_name,
                    sentence_index=index,
                    suggestion=f"Consider reducing to {config.max_citations_per_sentence} most relevant citations",
                ))

    def potential_evidence(
        self,
        sentence: str,
        evidence: list[EvidenceContext],
        exclude: set[str] | None = None,
    ) -> list[tuple[str, float]]:
        """Evidence ids worth citing for ``sentence``, best first."""
        exclude = exclude or set()
        plain = strip_markers(sentence)
        threshold = self._config.suggestion_similarity_threshold
        scored = []
        for ctx in evidence:
            if ctx.id in exclude:
                continue
            score = self._similarity.similarity(plain, ctx.text)
            if score > threshold:
                scored.append((ctx.id, score))
        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    @staticmethod
    def _utilization(claims: list[ClaimField], texts: dict[str, str]) -> float:
        if not texts:
            return 0.0
        cited = {eid for claim in claims for eid in claim.cited_evidence_ids() if eid in texts}
        return len(cited) / len(texts) * 100
