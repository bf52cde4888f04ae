"""Inline citation marker checks.

Independent of the structural citation objects: counts ``[evidence_<id>]``
markers in claim text and compares them with the declared citations.
"""
from __future__ import annotations

import re

from evidence_trust.models.claims import ClaimField
from evidence_trust.validation.models import FormatIssue, FormatValidationResult

DEFAULT_MARKER_PATTERN = r"\[evidence_[a-zA-Z0-9_-]+\]"
_EVIDENCE_ID = re.compile(r"evidence_([a-zA-Z0-9_-]+)")


def validate_citation_format(
    claims: list[ClaimField],
    pattern: str = DEFAULT_MARKER_PATTERN,
    min_compliance: float = 0.9,
) -> FormatValidationResult:
    marker = re.compile(pattern)
    errors: list[FormatIssue] = []
    found = 0
    expected = 0
    seen: set[str] = set()

    for claim in claims:
        expected += len(claim.citations)
        matches = list(marker.finditer(claim.text))
        found += len(matches)

        if len(matches) < len(claim.citations):
            errors.append(FormatIssue(
                type="missing_citation_marker",
                message=f"Expected {len(claim.citations)} citation markers, found {len(matches)}",
                position=0,
                text=claim.text,
                claim_field_id=claim.field_name,
                suggestion="Ensure each citation has a corresponding [evidence_id] marker in the text",
            ))

        for match in matches:
            text = match.group(0)
            # Duplicates are tracked across the whole response.
            if text in seen:
                errors.append(FormatIssue(
                    type="duplicate_citation",
                    message=f"Duplicate citation marker: {text}",
                    position=match.start(),
                    text=text,
                    claim_field_id=claim.field_name,
                    suggestion="Remove duplicate citation or use different evidence",
                ))
            else:
                seen.add(text)

            if not _EVIDENCE_ID.search(text):
                errors.append(FormatIssue(
                    type="malformed_evidence_id",
                    message=f"Malformed evidence ID in citation: {text}",
                    position=match.start(),
                    text=text,
                    claim_field_id=claim.field_name,
                    suggestion="Use format [evidence_<id>] where <id> is a valid evidence unit ID",
                ))

    compliance = min(found / expected, 1.0) if expected else 1.0
    return FormatValidationResult(
        is_valid=not errors and compliance >= min_compliance,
        errors=errors,
        citations_found=found,
        citations_expected=expected,
        format_compliance=compliance,
    )
