"""Tests for the pattern tables."""
from __future__ import annotations

import pytest

from evidence_trust.scoring.patterns import (
    AUTHORITY_DOMAIN_RULES,
    AUTHORITY_METADATA_RULES,
    CONTENT_RULES,
    CONTEXT_RULES,
    NEGATION_RULES,
    PERSONA_FIELDS,
    RECENCY_RULES,
    TOPIC_CATEGORIES,
    count_matches,
    matched_categories,
    rule,
)


class TestPatternRule:
    """Tests for PatternRule and the helpers around it."""

    def test_count_counts_every_occurrence(self):
        r = rule(r"\bdata\b", "formality")
        assert r.count("data, more data and DATA") == 3
        assert r.matches("Data")

    def test_rules_are_frozen(self):
        r = rule(r"x", "test")
        with pytest.raises(Exception):
            r.weight = 2.0

    def test_count_matches_by_category(self):
        text = "Some people probably think the study data is significant."
        assert count_matches(text, CONTENT_RULES, "vague") == 2  # some, probably
        assert count_matches(text, CONTENT_RULES, "formality") == 3  # study, data, significant

    def test_matched_categories_keeps_table_order(self):
        text = "Our team works with the university every weekend"
        assert matched_categories(text, CONTEXT_RULES) == ["professional", "personal", "educational"]


class TestTables:
    """Spot checks of table rows."""

    @pytest.mark.parametrize(
        "location, category",
        [
            ("https://cs.stanford.edu/paper", "academic"),
            ("https://www.cdc.gov/report", "government"),
            ("https://en.wikipedia.org/wiki/Python", "nonprofit"),
            ("https://twitter.com/someone/status/1", "social_media"),
        ],
    )
    def test_domain_categories(self, location, category):
        assert category in matched_categories(location, AUTHORITY_DOMAIN_RULES)

    def test_credentials_match_abbreviation_followed_by_space(self):
        credentials = next(r for r in AUTHORITY_METADATA_RULES if r.category == "author_credentials")
        assert credentials.matches("Dr. Jane Smith")
        assert credentials.matches("Jane Smith, PhD")
        assert not credentials.matches("Drew Smith")

    def test_factual_numbers(self):
        assert count_matches("Revenue rose 12% to 3.5 million", RECENCY_RULES, "factual") == 2

    def test_negation(self):
        negation = NEGATION_RULES[0]
        assert negation.matches("She did not work there")
        assert negation.matches("He isn't employed")
        assert not negation.matches("Nothing unusual")

    def test_term_categories(self):
        career = TOPIC_CATEGORIES["career"]
        text = "She worked at Acme as a software engineer"
        assert career.pattern_hits(text) == 2
        assert PERSONA_FIELDS["company"].keyword_hits("works at acme corp") == 1
