"""Knockout screening rules."""

from typing import Optional

KNOCKOUT_REJECTION_REASON = "failed knockout question"


def normalize_answer(answer: Optional[str]) -> str:
    return " ".join((answer or "").split()).casefold()


def passes_knockout(
    is_knockout: bool, expected_answer: Optional[str], answer: Optional[str]
) -> bool:
    """
    Check an answer against a knockout question.

    Answers are compared case-insensitively after trimming. A knockout
    question without an expected answer cannot be failed.
    """
    if not is_knockout or expected_answer is None or not expected_answer.strip():
        return True
    return normalize_answer(answer) == normalize_answer(expected_answer)
