"""Tests for ContentScorer."""
from __future__ import annotations

import pytest

from evidence_trust.models.evidence import EvidenceUnit
from evidence_trust.scoring.content import ContentScorer

SPECIFIC_TEXT = (
    "According to the 2023 annual report, Acme Corporation increased revenue by 12 percent. "
    "The study demonstrated significant growth in three regions over 18 months. "
    "However, operating costs rose 4% during the same period."
)
VAGUE_TEXT = "some stuff maybe happens sometimes, probably something like that you know"


def make_unit(text: str, **kwargs) -> EvidenceUnit:
    """Create a test EvidenceUnit."""
    return EvidenceUnit(id="ev-1", source_id="src-1", text=text, **kwargs)


class TestContentScorer:
    """Tests for ContentScorer.score()."""

    def test_empty_text_scores_zero(self):
        result = ContentScorer().score(make_unit("   "))
        assert result.score == 0.0
        assert result.reasoning == ["No text to score"]

    def test_specific_text_beats_vague_text(self):
        scorer = ContentScorer()
        specific = scorer.score(make_unit(SPECIFIC_TEXT))
        vague = scorer.score(make_unit(VAGUE_TEXT))

        assert specific.score > vague.score
        assert specific.components.specificity > vague.components.specificity
        assert 0.0 <= vague.score <= specific.score <= 1.0

    def test_vagueness_penalty_is_capped(self):
        result = ContentScorer().score(make_unit(VAGUE_TEXT))
        # Six vague indicators, penalty capped at 0.3.
        assert result.metrics.vagueness_count == 6
        assert result.components.specificity == pytest.approx(0.2)

    def test_fragment_is_reported(self):
        unit = make_unit("and the rest of it", has_complete_start=False, has_complete_end=False)
        result = ContentScorer().score(unit)
        assert any("Fragment" in line for line in result.reasoning)

    def test_declared_counts_override_derived(self):
        unit = make_unit(SPECIFIC_TEXT, word_count=200, sentence_count=2)
        result = ContentScorer().score(unit)
        assert result.metrics.word_count == 200
        assert result.metrics.avg_words_per_sentence == pytest.approx(100)
        assert any("Too long" in line for line in result.reasoning)

    def test_weights_control_final_score(self):
        scorer = ContentScorer({
            "weights": {"specificity": 1.0, "completeness": 0.0, "readability": 0.0, "density": 0.0,
                        "coherence": 0.0},
        })
        result = scorer.score(make_unit(SPECIFIC_TEXT))
        assert result.score == pytest.approx(result.components.specificity)

    def test_to_dict_rounds(self):
        data = ContentScorer().score(make_unit(SPECIFIC_TEXT)).to_dict()
        assert set(data["components"]) == {"specificity", "completeness", "readability", "density", "coherence"}
        assert data["score"] == round(data["score"], 3)
