from evidence_trust.scoring.authority import AuthorityResult, AuthorityScorer
from evidence_trust.scoring.confidence import ConfidenceBreakdown, ConfidenceScorer
from evidence_trust.scoring.content import ContentResult, ContentScorer
from evidence_trust.scoring.corroboration import CorroborationResult, CorroborationScorer
from evidence_trust.scoring.recency import RecencyResult, RecencyScorer
from evidence_trust.scoring.relevance import RelevanceResult, RelevanceScorer

__all__ = [
    "AuthorityResult",
    "AuthorityScorer",
    "ConfidenceBreakdown",
    "ConfidenceScorer",
    "ContentResult",
    "ContentScorer",
    "CorroborationResult",
    "CorroborationScorer",
    "RecencyResult",
    "RecencyScorer",
    "RelevanceResult",
    "RelevanceScorer",
]
