"""Interview service functions."""

from datetime import datetime
from typing import Any, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ConflictError, ValidationError
from core.middleware.authorization import CallerContext
from core.utils.datetime import ensure_aware, isoformat, now
from core.utils.formatting import format_name
from database.models.applications import Application, ApplicationActivityType
from database.models.interviews import (
    Interview,
    InterviewMode,
    InterviewScorecard,
    InterviewStatus,
)
from database.models.jobs import JobPosting
from database.repository import get_or_404, guarded_update
from recruitment import evaluation, lifecycle

from api.services.applications import load_application, record_activity

logger = logging.getLogger(__name__)


def serialize_interview(interview: Interview) -> dict[str, Any]:
    return {
        "id": interview.id,
        "application_id": interview.application_id,
        "panel": interview.panel,
        "mode": interview.mode.value,
        "location": interview.location,
        "starts_at": isoformat(interview.starts_at),
        "ends_at": isoformat(interview.ends_at),
        "status": interview.status.value,
        "feedback": interview.feedback,
        "notes": interview.notes,
        "version": interview.version,
    }


def build_invite(
    interview: Interview, application: Application, job: Optional[JobPosting]
) -> dict[str, Any]:
    """
    Structured invitation for the delivery collaborator.

    Calendar formats are rendered downstream; this only gathers what
    they need.
    """
    title = job.title if job else "your application"
    where = interview.location or (
        "Online" if interview.mode == InterviewMode.ONLINE else "To be confirmed"
    )
    starts_at = ensure_aware(interview.starts_at)
    body = (
        f"Dear {format_name(application.first_name, application.last_name)},\n\n"
        f"You are invited to an interview for {title}.\n"
        f"When: {starts_at:%A %d %B %Y, %H:%M} UTC\n"
        f"Where: {where}\n\n"
        f"{settings.company_name}"
    )
    return {
        "to": application.email,
        "subject": f"Interview invitation: {title}",
        "body": body,
        "starts_at": isoformat(interview.starts_at),
        "ends_at": isoformat(interview.ends_at),
        "location": where,
        "mode": interview.mode.value,
    }


async def schedule_interview(
    session: AsyncSession,
    application_id: int,
    starts_at: datetime,
    ends_at: datetime,
    panel: str = "",
    mode: InterviewMode = InterviewMode.ONLINE,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Schedule an interview for an application.

    Args:
        session: Database session
        application_id: Application being interviewed
        starts_at: Start time
        ends_at: End time, strictly after ``starts_at``
        panel: Interviewer names
        mode: ONLINE or PHYSICAL
        location: Room or meeting link
        notes: Internal notes
        caller: Acting user

    Returns:
        Dictionary with the interview and its invitation message

    Raises:
        ValidationError: If the time window is empty or inverted
        NotFoundError: If the application does not exist
        ConflictError: If the application is already accepted or rejected
    """
    starts_at, ends_at = ensure_aware(starts_at), ensure_aware(ends_at)
    if ends_at <= starts_at:
        raise ValidationError(
            "Interview must end after it starts",
            {"starts_at": isoformat(starts_at), "ends_at": isoformat(ends_at)},
        )

    application = await load_application(session, application_id)
    if lifecycle.is_terminal(application.status):
        raise ConflictError(
            f"Cannot schedule an interview for a {application.status.value} application",
            {"status": application.status.value},
        )

    interview = Interview(
        application_id=application_id,
        panel=panel or "",
        mode=mode,
        location=location,
        starts_at=starts_at,
        ends_at=ends_at,
        status=InterviewStatus.SCHEDULED,
        notes=notes,
    )
    session.add(interview)
    await session.flush()

    await session.execute(
        update(Application)
        .where(Application.id == application_id)
        .values(last_activity_at=now())
    )
    record_activity(
        session,
        application_id,
        ApplicationActivityType.INTERVIEW_SCHEDULED,
        f"Interview scheduled for {isoformat(starts_at)}",
        {"interview_id": interview.id, "mode": mode.value, "starts_at": isoformat(starts_at)},
        caller,
    )
    await session.commit()

    job = await session.get(JobPosting, application.job_id)
    logger.info(
        f"Interview {interview.id} scheduled for application {application_id}",
        extra={"application_id": application_id},
    )
    return {
        "interview": serialize_interview(interview),
        "invite": build_invite(interview, application, job),
    }


async def update_interview_status(
    session: AsyncSession,
    interview_id: int,
    status: InterviewStatus,
    expected_status: InterviewStatus = InterviewStatus.SCHEDULED,
    feedback: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """Record the outcome of a scheduled interview."""
    interview = await get_or_404(session, Interview, interview_id, "Interview")
    if interview.status != expected_status:
        raise ConflictError(
            f"Interview status is {interview.status.value}, expected {expected_status.value}",
            {"expected": expected_status.value, "actual": interview.status.value},
        )
    lifecycle.check_interview_transition(interview.status, status)

    values: dict[str, Any] = {"status": status}
    if feedback is not None:
        values["feedback"] = feedback
    await guarded_update(session, interview, "status", expected_status, values, "Interview")

    record_activity(
        session,
        interview.application_id,
        ApplicationActivityType.INTERVIEW_UPDATED,
        f"Interview marked {status.value}",
        {"interview_id": interview.id, "status": status.value},
        caller,
    )
    await session.commit()
    return serialize_interview(interview)


async def get_interview(session: AsyncSession, interview_id: int) -> dict[str, Any]:
    return serialize_interview(await get_or_404(session, Interview, interview_id, "Interview"))


async def list_interviews(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    await load_application(session, application_id)
    result = await session.execute(
        select(Interview)
        .where(Interview.application_id == application_id)
        .order_by(Interview.starts_at, Interview.id)
    )
    return [serialize_interview(i) for i in result.scalars().all()]


# ==================== Scorecards ==================== #

def serialize_scorecard(scorecard: InterviewScorecard) -> dict[str, Any]:
    return {
        "id": scorecard.id,
        "application_id": scorecard.application_id,
        "interview_id": scorecard.interview_id,
        "evaluator_id": scorecard.evaluator_id,
        "evaluator_name": scorecard.evaluator_name,
        "overall_rating": scorecard.overall_rating,
        "recommend_hire": scorecard.recommend_hire,
        "criteria_scores": dict(scorecard.criteria_scores or {}),
        "strengths": scorecard.strengths,
        "weaknesses": scorecard.weaknesses,
        "comments": scorecard.comments,
        "submitted_at": isoformat(scorecard.submitted_at),
    }


async def submit_scorecard(
    session: AsyncSession,
    application_id: int,
    overall_rating: int,
    caller: CallerContext,
    recommend_hire: bool = False,
    criteria_scores: Optional[dict[str, int]] = None,
    interview_id: Optional[int] = None,
    evaluator_name: Optional[str] = None,
    strengths: Optional[str] = None,
    weaknesses: Optional[str] = None,
    comments: Optional[str] = None,
) -> dict[str, Any]:
    """
    Record an evaluator's scorecard for an application.

    The caller is the evaluator. When ``interview_id`` is given the
    interview must belong to the application and each evaluator scores it
    once. Scorecards stay allowed after the application is decided so
    late feedback is not lost.

    Args:
        session: Database session
        application_id: Application evaluated
        overall_rating: Whole number from 1 to 5
        caller: Evaluator
        recommend_hire: Whether the evaluator recommends hiring
        criteria_scores: Criterion name to 1-5 rating
        interview_id: Interview the scorecard is for
        evaluator_name: Display name for the activity trail
        strengths: Free text
        weaknesses: Free text
        comments: Free text

    Returns:
        The stored scorecard

    Raises:
        ValidationError: On out-of-range ratings or a foreign interview
        NotFoundError: If the application or interview does not exist
        ConflictError: If the evaluator already scored the interview
    """
    overall_rating = evaluation.check_rating(overall_rating)
    criteria = evaluation.check_criteria(criteria_scores)
    await load_application(session, application_id)

    if interview_id is not None:
        interview = await get_or_404(session, Interview, interview_id, "Interview")
        if interview.application_id != application_id:
            raise ValidationError(
                f"Interview {interview_id} belongs to another application",
                {"interview_id": interview_id, "application_id": interview.application_id},
            )
        existing = await session.execute(
            select(InterviewScorecard.id).where(
                InterviewScorecard.interview_id == interview_id,
                InterviewScorecard.evaluator_id == caller.user_id,
            )
        )
        previous = existing.scalar_one_or_none()
        if previous is not None:
            raise ConflictError(
                f"{caller.user_id} already scored interview {interview_id}",
                {"scorecard_id": previous},
            )

    scorecard = InterviewScorecard(
        application_id=application_id,
        interview_id=interview_id,
        evaluator_id=caller.user_id,
        evaluator_name=evaluator_name,
        overall_rating=overall_rating,
        recommend_hire=recommend_hire,
        criteria_scores=criteria,
        strengths=strengths,
        weaknesses=weaknesses,
        comments=comments,
    )
    session.add(scorecard)
    await session.flush()

    await session.execute(
        update(Application)
        .where(Application.id == application_id)
        .values(last_activity_at=now())
    )
    record_activity(
        session,
        application_id,
        ApplicationActivityType.SCORECARD_SUBMITTED,
        f"{evaluator_name or caller.user_id} submitted a scorecard rated {overall_rating}/5",
        {"scorecard_id": scorecard.id, "rating": overall_rating, "interview_id": interview_id},
        caller,
    )
    await session.commit()
    logger.info(
        f"Scorecard {scorecard.id} submitted for application {application_id}",
        extra={"application_id": application_id},
    )
    return serialize_scorecard(scorecard)


async def _scorecards(session: AsyncSession, application_id: int) -> list[InterviewScorecard]:
    await load_application(session, application_id)
    result = await session.execute(
        select(InterviewScorecard)
        .where(InterviewScorecard.application_id == application_id)
        .order_by(InterviewScorecard.submitted_at, InterviewScorecard.id)
    )
    return list(result.scalars().all())


async def list_scorecards(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    return [serialize_scorecard(s) for s in await _scorecards(session, application_id)]


async def scorecard_summary(session: AsyncSession, application_id: int) -> dict[str, Any]:
    """Averages and hire recommendations across an application's scorecards."""
    summary = evaluation.summarize(await _scorecards(session, application_id))
    return {"application_id": application_id, **summary}
