"""Tests for the text, similarity and date helpers."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from evidence_trust.utils.similarity import (
    DEFAULT_SIMILARITY,
    SimilarityBackend,
    jaccard_similarity,
    tokenize,
)
from evidence_trust.utils.text import (
    clamp,
    count_sentences,
    count_words,
    ends_complete,
    mean,
    split_sentences,
    starts_complete,
    variance,
)
from evidence_trust.utils.timeutil import age_in_days, as_aware, whole_days


class TestTokenize:
    """Tests for tokenize()."""

    def test_lowercases_and_drops_short_words(self):
        assert tokenize("The cat, a DOG!") == {"the", "cat", "dog"}

    def test_punctuation_is_deleted(self):
        assert tokenize("state-of-the-art") == {"stateoftheart"}
        assert tokenize("Jane's team isn't remote.") == {"janes", "team", "isnt", "remote"}

    def test_empty_text(self):
        assert tokenize("") == set()


class TestJaccard:
    """Tests for jaccard_similarity()."""

    def test_identical_texts(self):
        assert jaccard_similarity("Jane works at Acme", "jane works at acme.") == 1.0

    def test_partial_overlap(self):
        # {jane, works, acme} vs {jane, works, globex}
        assert jaccard_similarity("Jane works at Acme", "Jane works at Globex") == pytest.approx(0.5)

    def test_disjoint_and_empty(self):
        assert jaccard_similarity("alpha beta", "gamma delta") == 0.0
        assert jaccard_similarity("", "gamma delta") == 0.0

    def test_default_backend_satisfies_protocol(self):
        assert isinstance(DEFAULT_SIMILARITY, SimilarityBackend)
        assert DEFAULT_SIMILARITY.similarity("one two three", "one two three") == 1.0


class TestTextHelpers:
    """Tests for sentence and word helpers."""

    def test_split_sentences(self):
        assert split_sentences("One. Two!  Three?") == ["One", "Two", "Three"]
        assert split_sentences("Wait... what?!") == ["Wait", "what"]
        assert split_sentences("") == []

    def test_count_sentences_is_at_least_one(self):
        assert count_sentences("") == 1
        assert count_sentences("A. B. C.") == 3

    def test_count_words(self):
        assert count_words("  several   spaced words ") == 3
        assert count_words("") == 0

    def test_boundaries(self):
        assert starts_complete("The start")
        assert not starts_complete("middle of something")
        assert ends_complete('It ended."')
        assert not ends_complete("and then")

    def test_clamp_mean_variance(self):
        assert clamp(1.4) == 1.0
        assert clamp(-0.2) == 0.0
        assert mean([]) == 0.0
        assert variance([1.0, 1.0]) == 0.0
        assert variance([0.0, 1.0]) == pytest.approx(0.25)


class TestTimeHelpers:
    """Tests for date arithmetic."""

    def test_missing_date_is_age_zero(self, fixed_now):
        assert age_in_days(None, fixed_now) == 0.0

    def test_future_date_is_age_zero(self, fixed_now):
        assert age_in_days(fixed_now + timedelta(days=3), fixed_now) == 0.0

    def test_naive_dates_are_utc(self, fixed_now):
        naive = datetime(2024, 5, 31, 12, 0)
        assert as_aware(naive).tzinfo is timezone.utc
        assert age_in_days(naive, fixed_now) == pytest.approx(1.0)

    def test_whole_days_floors(self, fixed_now):
        assert whole_days(fixed_now - timedelta(days=2, hours=20), fixed_now) == 2
