"""
Rule-based fit scoring and decision classification.

Both functions are pure: the same inputs always give the same score,
reasons and decision, so they are safe to run for many applications in
parallel.

Weights:
    matched must-have keyword       +20
    missing must-have keyword        +0 (named in the reasons)
    matched preferred keyword        +5
    internal applicant               +10 (only with a non-empty profile)
    job title word in the profile    +2 each, at most +10
The total is clamped to 0..100.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from database.models.applications import ApplicantType, Decision
from recruitment.rules import MAX_SCORE, RuleConfig

MUST_HAVE_WEIGHT = 20
PREFERRED_WEIGHT = 5
INTERNAL_BONUS = 10
TITLE_TOKEN_WEIGHT = 2
TITLE_BONUS_CAP = 10
TITLE_TOKEN_MIN_LENGTH = 4

_TOKEN = re.compile(r"[^\W\d_]+")


@dataclass(frozen=True)
class ScoreResult:
    """Score with the human-readable reasons that produced it."""

    score: float
    reasons: list[str] = field(default_factory=list)


def keyword_pattern(keyword: str) -> re.Pattern:
    """
    Compile a case-insensitive matcher for a keyword.

    Matches are anchored at a word start, so ``loan`` matches "loans" but
    not "payloan". Multi-word keywords match as a phrase with any run of
    whitespace between words.
    """
    words = [re.escape(word) for word in keyword.split()]
    return re.compile(r"(?<!\w)" + r"\s+".join(words), re.IGNORECASE)


def contains_keyword(text: str, keyword: str) -> bool:
    """Check whether ``keyword`` occurs in ``text``."""
    if not text or not keyword.strip():
        return False
    return keyword_pattern(keyword).search(text) is not None


def _title_tokens(job_text: str) -> list[str]:
    # Only the title line (first line of the job text) feeds the overlap bonus
    lines = (job_text or "").strip().splitlines()
    title = lines[0] if lines else ""
    tokens: list[str] = []
    for token in _TOKEN.findall(title.lower()):
        if len(token) >= TITLE_TOKEN_MIN_LENGTH and token not in tokens:
            tokens.append(token)
    return tokens


def score(
    candidate_text: Optional[str],
    job_text: Optional[str],
    rules: Optional[RuleConfig] = None,
    applicant_type: ApplicantType = ApplicantType.EXTERNAL,
) -> ScoreResult:
    """
    Score a candidate profile against a job's rules.

    Args:
        candidate_text: Resume or profile text
        job_text: Job title on the first line, then the description
        rules: Rule configuration (defaults when None)
        applicant_type: Internal applicants get a bonus

    Returns:
        ScoreResult with the clamped score and ordered reasons
    """
    rules = rules or RuleConfig.defaults()
    text = candidate_text or ""
    total = 0
    reasons: list[str] = []

    for keyword in rules.must_have:
        if contains_keyword(text, keyword):
            total += MUST_HAVE_WEIGHT
            reasons.append(f"matched must-have: {keyword}")
        else:
            reasons.append(f"missing must-have: {keyword}")

    for keyword in rules.preferred:
        if contains_keyword(text, keyword):
            total += PREFERRED_WEIGHT
            reasons.append(f"matched preferred: {keyword}")

    if text.strip():
        if applicant_type == ApplicantType.INTERNAL:
            total += INTERNAL_BONUS
            reasons.append("internal applicant bonus")

        title_bonus = 0
        for token in _title_tokens(job_text or ""):
            if title_bonus >= TITLE_BONUS_CAP:
                break
            if contains_keyword(text, token):
                title_bonus += TITLE_TOKEN_WEIGHT
                reasons.append(f"title match: {token}")
        total += title_bonus

    return ScoreResult(score=float(max(0, min(total, MAX_SCORE))), reasons=reasons)


def classify(value: float, rules: Optional[RuleConfig] = None) -> Decision:
    """
    Map a score to a decision.

    Both boundaries are inclusive toward the stricter outcome: a score
    equal to the shortlist threshold shortlists, one equal to the reject
    threshold auto-rejects.
    """
    rules = rules or RuleConfig.defaults()
    if value >= rules.shortlist_threshold:
        return Decision.SHORTLIST
    if value <= rules.reject_threshold:
        return Decision.AUTO_REJECT
    return Decision.RECEIVED
