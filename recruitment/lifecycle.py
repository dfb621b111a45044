"""
Application and interview state machines.

Forward path:
    RECEIVED -> REVIEWED -> SHORTLISTED -> INTERVIEWING -> OFFERED -> ACCEPTED

REJECTED is reachable from every non-terminal status. ACCEPTED and
REJECTED are terminal. Stage placement on a pipeline is tracked separately
and never implies a status change.
"""

from typing import Optional

from core.exceptions import ConflictError, ValidationError
from database.models.applications import ApplicationStatus, Decision
from database.models.interviews import InterviewStatus

FORWARD_PATH: tuple[ApplicationStatus, ...] = (
    ApplicationStatus.RECEIVED,
    ApplicationStatus.REVIEWED,
    ApplicationStatus.SHORTLISTED,
    ApplicationStatus.INTERVIEWING,
    ApplicationStatus.OFFERED,
    ApplicationStatus.ACCEPTED,
)

TERMINAL_STATUSES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})

# Older clients still send SUBMITTED for a freshly received application
STATUS_ALIASES = {"SUBMITTED": ApplicationStatus.RECEIVED}

_INITIAL_STATUS = {
    Decision.SHORTLIST: ApplicationStatus.SHORTLISTED,
    Decision.AUTO_REJECT: ApplicationStatus.REJECTED,
    Decision.RECEIVED: ApplicationStatus.RECEIVED,
}

INTERVIEW_TRANSITIONS: dict[InterviewStatus, frozenset[InterviewStatus]] = {
    InterviewStatus.SCHEDULED: frozenset(
        {InterviewStatus.COMPLETED, InterviewStatus.CANCELLED, InterviewStatus.NO_SHOW}
    ),
    InterviewStatus.COMPLETED: frozenset(),
    InterviewStatus.CANCELLED: frozenset(),
    InterviewStatus.NO_SHOW: frozenset(),
}


def parse_status(value: str | ApplicationStatus) -> ApplicationStatus:
    """
    Parse a status from client input, accepting the SUBMITTED alias.

    Raises:
        ValidationError: If the value names no known status
    """
    if isinstance(value, ApplicationStatus):
        return value
    key = str(value).strip().upper()
    if key in STATUS_ALIASES:
        return STATUS_ALIASES[key]
    try:
        return ApplicationStatus(key)
    except ValueError:
        raise ValidationError(f"Unknown application status: {value}", {"status": value})


def initial_status(decision: Decision) -> ApplicationStatus:
    """Status a new application starts in for a given decision."""
    return _INITIAL_STATUS[decision]


def is_terminal(status: ApplicationStatus) -> bool:
    return status in TERMINAL_STATUSES


def allowed_transitions(status: ApplicationStatus) -> frozenset[ApplicationStatus]:
    """Statuses reachable in one step from ``status``."""
    if is_terminal(status):
        return frozenset()
    targets = {ApplicationStatus.REJECTED}
    following = next_status(status)
    if following is not None:
        targets.add(following)
    return frozenset(targets)


def next_status(status: ApplicationStatus) -> Optional[ApplicationStatus]:
    """Next status on the forward path, or None at the end of it."""
    if status == ApplicationStatus.REJECTED:
        return None
    index = FORWARD_PATH.index(status)
    if index + 1 >= len(FORWARD_PATH):
        return None
    return FORWARD_PATH[index + 1]


def check_expected(
    current: ApplicationStatus, expected: ApplicationStatus, entity: str = "Application"
) -> None:
    """
    Refuse an action prepared against a status that no longer holds.

    Raises:
        ConflictError: If ``current`` differs from ``expected``
    """
    if current != expected:
        raise ConflictError(
            f"{entity} status is {current.value}, expected {expected.value}",
            {"expected": expected.value, "actual": current.value},
        )


def check_transition(current: ApplicationStatus, target: ApplicationStatus) -> None:
    """
    Ensure ``target`` is a legal successor of ``current``.

    Raises:
        ConflictError: If the transition is not allowed
    """
    if target not in allowed_transitions(current):
        raise ConflictError(
            f"Cannot move application from {current.value} to {target.value}",
            {"from": current.value, "to": target.value},
        )


def require_reason(reason: Optional[str]) -> str:
    """
    Return a trimmed rejection reason.

    Raises:
        ValidationError: If the reason is missing or blank
    """
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A rejection reason is required", {"field": "reason"})
    return cleaned


def check_interview_transition(
    current: InterviewStatus, target: InterviewStatus
) -> None:
    """
    Ensure an interview status change is allowed.

    Only scheduled interviews change status; every other status is final.

    Raises:
        ConflictError: If the transition is not allowed
    """
    if target not in INTERVIEW_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot move interview from {current.value} to {target.value}",
            {"from": current.value, "to": target.value},
        )
