"""
Per-job recruitment rules.

A rule set holds must-have and preferred keyword lists plus the score
thresholds used to classify applications at intake. Rule sets are
validated and normalized when saved, never at scoring time.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from core.config import settings
from core.exceptions import ValidationError

MAX_SCORE = 100


@dataclass(frozen=True)
class RuleConfig:
    """Normalized, validated rule set used by the scoring engine."""

    must_have: tuple[str, ...] = ()
    preferred: tuple[str, ...] = ()
    shortlist_threshold: float = 35
    reject_threshold: float = 15
    auto_regret: bool = False

    @classmethod
    def defaults(cls) -> "RuleConfig":
        """Rules applied when a job has no stored rule set."""
        return cls(
            shortlist_threshold=settings.default_shortlist_threshold,
            reject_threshold=settings.default_reject_threshold,
        )

    @classmethod
    def from_model(cls, rule_set) -> "RuleConfig":
        """Build from a stored ``RuleSet`` row, or defaults when None."""
        if rule_set is None:
            return cls.defaults()
        return cls(
            must_have=tuple(rule_set.must_have or ()),
            preferred=tuple(rule_set.preferred or ()),
            shortlist_threshold=rule_set.shortlist_threshold,
            reject_threshold=rule_set.reject_threshold,
            auto_regret=bool(rule_set.auto_regret),
        )


def normalize_keywords(keywords: Optional[Iterable[str]]) -> list[str]:
    """
    Normalize a keyword list into an ordered set.

    Entries are trimmed and blank ones dropped. Duplicates are compared
    case-insensitively and the first occurrence (with its casing) wins,
    so the saved list keeps the caller's order.

    Args:
        keywords: Raw keyword list (None is treated as empty)

    Returns:
        Normalized keyword list
    """
    result: list[str] = []
    seen: set[str] = set()
    for keyword in keywords or ():
        if keyword is None:
            continue
        cleaned = " ".join(str(keyword).split())
        if not cleaned:
            continue
        key = cleaned.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def validate_rule_set(
    must_have: Optional[Iterable[str]] = None,
    preferred: Optional[Iterable[str]] = None,
    shortlist_threshold: Optional[float] = None,
    reject_threshold: Optional[float] = None,
    auto_regret: bool = False,
) -> RuleConfig:
    """
    Validate and normalize a rule set before it is saved.

    Missing thresholds fall back to the configured defaults.

    Args:
        must_have: Keywords that weigh heavily when present
        preferred: Keywords that add a smaller bonus
        shortlist_threshold: Minimum score that shortlists
        reject_threshold: Maximum score that auto-rejects
        auto_regret: Send regret messages to auto-rejected applicants

    Returns:
        Normalized rule configuration

    Raises:
        ValidationError: On out-of-range or misordered thresholds
    """
    shortlist = (
        settings.default_shortlist_threshold
        if shortlist_threshold is None
        else shortlist_threshold
    )
    reject = (
        settings.default_reject_threshold
        if reject_threshold is None
        else reject_threshold
    )

    for name, value in (("shortlist_threshold", shortlist), ("reject_threshold", reject)):
        if value < 0 or value > MAX_SCORE:
            raise ValidationError(
                f"{name} must be between 0 and {MAX_SCORE}",
                {"field": name, "value": value},
            )

    if reject >= shortlist:
        raise ValidationError(
            "reject_threshold must be lower than shortlist_threshold",
            {"shortlist_threshold": shortlist, "reject_threshold": reject},
        )

    return RuleConfig(
        must_have=tuple(normalize_keywords(must_have)),
        preferred=tuple(normalize_keywords(preferred)),
        shortlist_threshold=shortlist,
        reject_threshold=reject,
        auto_regret=bool(auto_regret),
    )
