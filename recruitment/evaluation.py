"""
Reviewer input on an application: notes, tags and interview scorecards.

Ratings run from 1 to 5. A scorecard carries an overall rating, a hire
recommendation and optional per-criterion ratings; the summary averages
them across every scorecard submitted for the application.
"""

import re
from typing import Any, Iterable, Mapping, Optional

from core.exceptions import ValidationError

MIN_RATING = 1
MAX_RATING = 5

NOTE_PREVIEW_LENGTH = 100
MAX_TAG_LENGTH = 60
DEFAULT_TAG_COLOR = "#10B981"
DEFAULT_TAG_CATEGORY = "custom"

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def require_content(content: Optional[str]) -> str:
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationError("Note content is required")
    return cleaned


def note_preview(content: str) -> str:
    """First characters of a note for the activity trail."""
    if len(content) <= NOTE_PREVIEW_LENGTH:
        return content
    return content[:NOTE_PREVIEW_LENGTH] + "..."


def normalize_tag(name: Optional[str]) -> str:
    """
    Collapse whitespace in a tag name.

    Raises:
        ValidationError: If the name is blank or too long
    """
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise ValidationError("Tag name is required")
    if len(cleaned) > MAX_TAG_LENGTH:
        raise ValidationError(
            f"Tag name is longer than {MAX_TAG_LENGTH} characters",
            {"name": cleaned},
        )
    return cleaned


def check_color(color: Optional[str]) -> str:
    if color is None:
        return DEFAULT_TAG_COLOR
    if not _COLOR_RE.match(color):
        raise ValidationError("Tag color must be a hex value like #10B981", {"color": color})
    return color.upper()


def check_rating(rating: Any, field: str = "overall_rating") -> int:
    """
    Validate a 1-5 rating.

    Booleans and fractional values are refused.

    Raises:
        ValidationError: If the rating is not a whole number in range
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"{field} must be a whole number", {field: rating})
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"{field} must be between {MIN_RATING} and {MAX_RATING}",
            {field: rating},
        )
    return rating


def check_criteria(scores: Optional[Mapping[str, Any]]) -> dict[str, int]:
    """
    Validate per-criterion ratings.

    Criterion names are trimmed; a name repeated after trimming is refused.

    Returns:
        Mapping of criterion name to rating
    """
    checked: dict[str, int] = {}
    for name, rating in (scores or {}).items():
        key = " ".join(str(name).split())
        if not key:
            raise ValidationError("Criterion name is required")
        if key in checked:
            raise ValidationError(f"Criterion {key} rated twice", {"criterion": key})
        checked[key] = check_rating(rating, key)
    return checked


def summarize(scorecards: Iterable[Any]) -> dict[str, Any]:
    """
    Aggregate scorecards for one application.

    Averages are rounded to one decimal and the recommendation share to a
    whole percent. With no scorecards the averages are None.

    Args:
        scorecards: Objects with ``overall_rating``, ``recommend_hire``
            and ``criteria_scores``

    Returns:
        Dictionary with count, average_rating, recommend_hire_count,
        recommend_hire_percentage and criteria_averages
    """
    scorecards = list(scorecards)
    if not scorecards:
        return {
            "count": 0,
            "average_rating": None,
            "recommend_hire_count": 0,
            "recommend_hire_percentage": 0,
            "criteria_averages": {},
        }

    count = len(scorecards)
    recommended = sum(1 for card in scorecards if card.recommend_hire)

    totals: dict[str, list[int]] = {}
    for card in scorecards:
        for name, rating in (card.criteria_scores or {}).items():
            totals.setdefault(name, []).append(rating)

    return {
        "count": count,
        "average_rating": round(sum(card.overall_rating for card in scorecards) / count, 1),
        "recommend_hire_count": recommended,
        "recommend_hire_percentage": round(recommended * 100 / count),
        "criteria_averages": {
            name: round(sum(ratings) / len(ratings), 1)
            for name, ratings in sorted(totals.items())
        },
    }
