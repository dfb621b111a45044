"""
Recruitment domain rules.

Pure functions for scoring, classification and the application, offer
and onboarding state machines. Nothing here touches the database; the
services in ``api.services`` load state, apply these rules and persist.
"""

from recruitment.rules import RuleConfig, normalize_keywords, validate_rule_set
from recruitment.scoring import ScoreResult, classify, score

__all__ = [
    "RuleConfig",
    "ScoreResult",
    "classify",
    "normalize_keywords",
    "score",
    "validate_rule_set",
]
