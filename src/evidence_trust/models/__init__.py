from evidence_trust.models.claims import (
    Citation,
    ClaimField,
    ConflictFlag,
    ExtractionClient,
    ExtractionConstraints,
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResponse,
    PersonaClaims,
)
from evidence_trust.models.evidence import (
    EvidenceContext,
    EvidenceUnit,
    QualityRequest,
    RelevanceTarget,
    Source,
    SourcedEvidence,
    SourceTier,
)

__all__ = [
    "Citation",
    "ClaimField",
    "ConflictFlag",
    "EvidenceContext",
    "EvidenceUnit",
    "ExtractionClient",
    "ExtractionConstraints",
    "ExtractionMetadata",
    "ExtractionRequest",
    "ExtractionResponse",
    "PersonaClaims",
    "QualityRequest",
    "RelevanceTarget",
    "Source",
    "SourcedEvidence",
    "SourceTier",
]
