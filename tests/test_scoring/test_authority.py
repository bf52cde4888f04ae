"""Tests for AuthorityScorer."""
from __future__ import annotations

import pytest

from evidence_trust.models.evidence import Source, SourceTier
from evidence_trust.scoring.authority import AuthorityScorer


def make_source(
    tier: SourceTier = SourceTier.INFORMAL,
    url: str | None = None,
    title: str | None = None,
    author: str | None = None,
    metadata: dict | None = None,
) -> Source:
    """Create a test Source."""
    return Source(id="src-1", tier=tier, url=url, title=title, author=author, metadata=metadata or {})


class TestTierScore:
    """Base tier weights."""

    @pytest.mark.parametrize(
        "tier, expected",
        [
            (SourceTier.CANONICAL, 1.0),
            (SourceTier.REPUTABLE, 0.85),
            (SourceTier.COMMUNITY, 0.65),
            (SourceTier.INFORMAL, 0.4),
        ],
    )
    def test_tier_only(self, tier, expected):
        result = AuthorityScorer().score(make_source(tier=tier))
        assert result.score == pytest.approx(expected)
        assert result.components.tier_score == pytest.approx(expected)
        assert result.reasoning[0].startswith(f"Base tier ({tier.value})")

    def test_tier_override(self):
        scorer = AuthorityScorer({"tier_weights": {"informal": 0.2}})
        assert scorer.score(make_source()).score == pytest.approx(0.2)


class TestDomainBoost:
    """Domain category boosts and penalties."""

    def test_academic_domain(self):
        result = AuthorityScorer().score(make_source(url="https://cs.stanford.edu/paper"))
        assert result.components.domain_boost == pytest.approx(0.15)
        assert result.score == pytest.approx(0.55)
        assert result.domain == "cs.stanford.edu"

    def test_boosts_are_not_summed(self):
        # Matches both academic (.edu) and nonprofit (archive.org).
        result = AuthorityScorer().score(make_source(url="https://example.edu/mirror/archive.org"))
        assert result.components.domain_boost == pytest.approx(0.15)

    def test_social_media_penalty(self):
        result = AuthorityScorer().score(make_source(tier=SourceTier.COMMUNITY, url="https://twitter.com/u/1"))
        assert result.components.domain_boost == pytest.approx(-0.1)
        assert result.score == pytest.approx(0.55)


class TestTitleAndMetadata:
    """Title language and metadata adjustments."""

    def test_sensational_title_lowers_score(self):
        result = AuthorityScorer().score(make_source(tier=SourceTier.REPUTABLE, title="Shocking secret revealed"))
        assert result.components.title_boost == pytest.approx(-0.05)
        assert result.score == pytest.approx(0.80)

    def test_academic_and_official_title(self):
        result = AuthorityScorer().score(make_source(title="Official report on research findings"))
        assert result.components.title_boost == pytest.approx(0.08)

    def test_metadata_boosts(self):
        source = make_source(
            author="Dr. Jane Smith",
            metadata={"publication": "Nature", "peer_reviewed": True, "doi": "10.1000/xyz"},
        )
        result = AuthorityScorer().score(source)
        # credentials 0.04 + academic publisher 0.06 + peer review 0.08 + identifier 0.03
        assert result.components.metadata_boost == pytest.approx(0.21)
        assert result.score == pytest.approx(0.61)

    def test_score_is_clamped(self):
        source = make_source(
            tier=SourceTier.CANONICAL,
            url="https://www.nih.gov/study",
            title="Peer-reviewed study findings",
            metadata={"peer_reviewed": True},
        )
        result = AuthorityScorer().score(source)
        assert result.score == 1.0
        assert result.to_dict()["score"] == 1.0
