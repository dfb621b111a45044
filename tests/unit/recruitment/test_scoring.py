"""
Tests for the rule-based scoring engine and decision classification.
"""

import pytest

from database.models.applications import ApplicantType, Decision
from recruitment.rules import RuleConfig
from recruitment.scoring import (
    MUST_HAVE_WEIGHT,
    PREFERRED_WEIGHT,
    classify,
    contains_keyword,
    score,
)

LOAN_RULES = RuleConfig(
    must_have=("loan", "microfinance"),
    preferred=("credit",),
    shortlist_threshold=35,
    reject_threshold=15,
)


class TestKeywordMatching:
    """Test keyword matching."""

    @pytest.mark.parametrize("text,keyword,expected", [
        ("Loan officer", "loan", True),
        ("handled LOANS daily", "loan", True),
        ("payloan platform", "loan", False),
        ("customer   service lead", "customer service", True),
        ("customer-facing service", "customer service", False),
        ("", "loan", False),
        ("loan officer", "   ", False),
    ])
    def test_contains_keyword(self, text, keyword, expected):
        assert contains_keyword(text, keyword) is expected

    def test_regex_characters_are_literal(self):
        assert contains_keyword("Skilled in C++ and SQL", "c++")
        assert not contains_keyword("Skilled in C and SQL", "c++")


class TestScore:
    """Test score computation."""

    def test_strong_loan_officer_is_shortlisted(self):
        result = score(
            "loan officer with microfinance credit experience",
            "Loan Officer\nOriginate and manage microloans",
            LOAN_RULES,
        )

        assert classify(result.score, LOAN_RULES) == Decision.SHORTLIST
        assert "matched must-have: loan" in result.reasons
        assert "matched must-have: microfinance" in result.reasons
        assert "matched preferred: credit" in result.reasons

    def test_empty_profile_scores_zero_and_is_auto_rejected(self):
        result = score("", "Loan Officer\nDescription", RuleConfig.defaults())

        assert result.score == 0
        assert classify(result.score) == Decision.AUTO_REJECT

    def test_empty_profile_gets_no_internal_bonus(self):
        result = score("   ", "Teller", RuleConfig(), ApplicantType.INTERNAL)
        assert result.score == 0
        assert "internal applicant bonus" not in result.reasons

    def test_missing_must_have_is_named(self):
        result = score("microfinance background", "Officer", LOAN_RULES)

        assert "missing must-have: loan" in result.reasons
        assert "matched must-have: microfinance" in result.reasons

    def test_weights(self):
        rules = RuleConfig(must_have=("loan",), preferred=("credit", "excel"))
        result = score("loan credit excel", "Analyst", rules)
        assert result.score == MUST_HAVE_WEIGHT + 2 * PREFERRED_WEIGHT

    def test_internal_applicant_bonus(self):
        external = score("branch operations", "Teller", RuleConfig())
        internal = score("branch operations", "Teller", RuleConfig(), ApplicantType.INTERNAL)

        assert internal.score == external.score + 10
        assert "internal applicant bonus" in internal.reasons

    def test_title_overlap_bonus_is_capped(self):
        job = "Senior Regional Branch Credit Operations Manager Supervisor\n"
        text = "senior regional branch credit operations manager supervisor"
        result = score(text, job, RuleConfig())

        assert result.score == 10
        assert sum(r.startswith("title match:") for r in result.reasons) == 5

    def test_short_title_words_ignored(self):
        result = score("an IT job", "IT Officer", RuleConfig())
        assert "title match: it" not in result.reasons

    def test_score_is_clamped(self):
        keywords = tuple(f"skill{i}" for i in range(8))
        rules = RuleConfig(must_have=keywords)
        result = score(" ".join(keywords), "Role", rules)
        assert result.score == 100

    def test_deterministic(self):
        first = score("loan credit", "Loan Officer", LOAN_RULES)
        second = score("loan credit", "Loan Officer", LOAN_RULES)
        assert first == second


class TestClassify:
    """Test threshold boundaries."""

    @pytest.mark.parametrize("value,expected", [
        (100, Decision.SHORTLIST),
        (35, Decision.SHORTLIST),
        (34.9, Decision.RECEIVED),
        (15.1, Decision.RECEIVED),
        (15, Decision.AUTO_REJECT),
        (0, Decision.AUTO_REJECT),
    ])
    def test_boundaries(self, value, expected):
        assert classify(value, LOAN_RULES) == expected

    def test_defaults_used_without_rules(self):
        assert classify(35) == Decision.SHORTLIST
        assert classify(20) == Decision.RECEIVED
