"""
Application service functions for API endpoints.

Intake (score, classify, place on the first pipeline stage), guarded
status transitions, kanban stage moves and the activity trail.
"""

from typing import Any, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ValidationError
from core.middleware.authorization import CallerContext
from core.utils.datetime import isoformat, now
from core.utils.validators import normalize_phone, validate_phone
from database.models.applications import (
    ApplicantType,
    Application,
    ApplicationActivity,
    ApplicationActivityType,
    ApplicationStatus,
    Decision,
)
from database.models.jobs import JobPosting
from database.models.pipelines import PipelineStage
from database.repository import get_or_404, guarded_update
from recruitment import lifecycle
from recruitment.scoring import classify, score

from api.services.jobs import is_accepting_applications, job_text, load_rule_config

logger = logging.getLogger(__name__)


def serialize_application(application: Application) -> dict[str, Any]:
    return {
        "id": application.id,
        "job_id": application.job_id,
        "first_name": application.first_name,
        "last_name": application.last_name,
        "email": application.email,
        "phone": application.phone,
        "applicant_type": application.applicant_type.value,
        "status": application.status.value,
        "score": application.score,
        "decision": application.decision.value if application.decision else None,
        "decision_reasons": list(application.decision_reasons or []),
        "rejection_reason": application.rejection_reason,
        "current_stage_id": application.current_stage_id,
        "version": application.version,
        "applied_at": isoformat(application.applied_at),
        "last_activity_at": isoformat(application.last_activity_at),
    }


def serialize_activity(activity: ApplicationActivity) -> dict[str, Any]:
    return {
        "id": activity.id,
        "application_id": activity.application_id,
        "activity_type": activity.activity_type.value,
        "title": activity.title,
        "performed_by": activity.performed_by,
        "details": activity.details or {},
        "created_at": isoformat(activity.created_at),
    }


def record_activity(
    session: AsyncSession,
    application_id: int,
    activity_type: ApplicationActivityType,
    title: str,
    details: Optional[dict[str, Any]] = None,
    caller: Optional[CallerContext] = None,
) -> ApplicationActivity:
    """
    Add a timeline entry to the current unit of work.

    The caller commits, so the entry lands with the change it records.
    """
    activity = ApplicationActivity(
        application_id=application_id,
        activity_type=activity_type,
        title=title,
        details=details or {},
        performed_by=caller.user_id if caller else None,
    )
    session.add(activity)
    return activity


async def load_application(session: AsyncSession, application_id: int) -> Application:
    return await get_or_404(session, Application, application_id, "Application")


async def change_status(
    session: AsyncSession,
    application: Application,
    target: ApplicationStatus,
    expected: ApplicationStatus,
    reason: Optional[str] = None,
    caller: Optional[CallerContext] = None,
    details: Optional[dict[str, Any]] = None,
) -> Application:
    """
    Move an application to ``target`` inside the caller's transaction.

    Checks the expected status and the transition table first, then writes
    with a conditional update so a concurrent writer turns into a conflict
    instead of a lost update. Does not commit.

    Raises:
        ConflictError: On a stale expectation or an illegal transition
        ValidationError: When rejecting without a reason
    """
    lifecycle.check_expected(application.status, expected)
    lifecycle.check_transition(application.status, target)

    values: dict[str, Any] = {"status": target, "last_activity_at": now()}
    if target == ApplicationStatus.REJECTED:
        values["rejection_reason"] = lifecycle.require_reason(reason)

    previous = application.status
    await guarded_update(session, application, "status", expected, values, "Application")

    record_activity(
        session,
        application.id,
        ApplicationActivityType.STATUS_CHANGED,
        f"Status changed from {previous.value} to {target.value}",
        {
            "from": previous.value,
            "to": target.value,
            "reason": values.get("rejection_reason"),
            **(details or {}),
        },
        caller,
    )
    logger.info(
        f"Application {application.id} moved {previous.value} -> {target.value}",
        extra={"application_id": application.id},
    )
    return application


async def _first_stage_id(session: AsyncSession, pipeline_id: Optional[int]) -> Optional[int]:
    if pipeline_id is None:
        return None
    result = await session.execute(
        select(PipelineStage.id)
        .where(PipelineStage.pipeline_id == pipeline_id)
        .order_by(PipelineStage.stage_order)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def apply(
    session: AsyncSession,
    job_id: int,
    first_name: str,
    last_name: str,
    email: str,
    phone: Optional[str] = None,
    applicant_type: ApplicantType = ApplicantType.EXTERNAL,
    resume_text: Optional[str] = None,
    cover_letter: Optional[str] = None,
) -> dict[str, Any]:
    """
    Take in an application, score it and set its initial status.

    Args:
        session: Database session
        job_id: Job applied to
        first_name: Candidate first name
        last_name: Candidate last name
        email: Candidate email, unique per job
        phone: Candidate phone
        applicant_type: INTERNAL staff or EXTERNAL candidate
        resume_text: Profile text that is scored
        cover_letter: Cover letter, scored with the profile

    Returns:
        Dictionary with the application, score, decision, reasons and
        whether an automatic regret should follow

    Raises:
        NotFoundError: If the job does not exist
        ConflictError: If the job is closed or the email already applied
    """
    job = await get_or_404(session, JobPosting, job_id, "Job")
    if not is_accepting_applications(job):
        raise ConflictError(
            f"Job {job_id} is not accepting applications",
            {"status": job.status.value, "deadline": isoformat(job.deadline)},
        )

    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required", {"field": "email"})
    if phone:
        valid, error = validate_phone(phone)
        if not valid:
            raise ValidationError(error, {"field": "phone"})
        phone = normalize_phone(phone)

    existing = await session.execute(
        select(Application.id).where(Application.job_id == job_id, Application.email == email)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(
            f"{email} has already applied for job {job_id}", {"job_id": job_id}
        )

    rules = await load_rule_config(session, job_id)
    candidate_text = "\n".join(part for part in (resume_text, cover_letter) if part)
    result = score(candidate_text, job_text(job), rules, applicant_type)
    decision = classify(result.score, rules)
    status = lifecycle.initial_status(decision)

    timestamp = now()
    application = Application(
        job_id=job_id,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        phone=phone,
        applicant_type=applicant_type,
        resume_text=resume_text,
        cover_letter=cover_letter,
        status=status,
        score=result.score,
        decision=decision,
        decision_reasons=list(result.reasons),
        current_stage_id=await _first_stage_id(session, job.pipeline_id),
        applied_at=timestamp,
        last_activity_at=timestamp,
    )
    if status == ApplicationStatus.REJECTED:
        application.rejection_reason = (
            f"score {result.score:g} at or below reject threshold {rules.reject_threshold:g}"
        )
    session.add(application)

    try:
        await session.flush()
        record_activity(
            session,
            application.id,
            ApplicationActivityType.APPLIED,
            f"Applied for {job.title}",
            {"score": result.score, "decision": decision.value},
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError(f"{email} has already applied for job {job_id}", {"job_id": job_id})

    logger.info(
        f"Application {application.id} for job {job_id} scored {result.score:g}: {decision.value}",
        extra={"application_id": application.id, "job_id": job_id},
    )
    return {
        "application": serialize_application(application),
        "score": result.score,
        "decision": decision.value,
        "reasons": list(result.reasons),
        "auto_regret": decision == Decision.AUTO_REJECT and rules.auto_regret,
    }


async def get_application(session: AsyncSession, application_id: int) -> dict[str, Any]:
    return serialize_application(await load_application(session, application_id))


async def list_applications(
    session: AsyncSession,
    job_id: Optional[int] = None,
    status: Optional[ApplicationStatus] = None,
    stage_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """List applications, highest score first."""
    query = select(Application)
    if job_id is not None:
        query = query.where(Application.job_id == job_id)
    if status is not None:
        query = query.where(Application.status == status)
    if stage_id is not None:
        query = query.where(Application.current_stage_id == stage_id)
    query = query.order_by(Application.score.desc(), Application.id).limit(limit).offset(offset)
    result = await session.execute(query)
    return [serialize_application(a) for a in result.scalars().all()]


async def list_activity(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    """Timeline of an application, oldest first."""
    await load_application(session, application_id)
    result = await session.execute(
        select(ApplicationActivity)
        .where(ApplicationActivity.application_id == application_id)
        .order_by(ApplicationActivity.created_at, ApplicationActivity.id)
    )
    return [serialize_activity(a) for a in result.scalars().all()]


async def transition(
    session: AsyncSession,
    application_id: int,
    target: ApplicationStatus | str,
    expected_status: ApplicationStatus | str,
    reason: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Guarded transition to any legal successor status.

    Raises:
        NotFoundError: If the application does not exist
        ConflictError: On a stale expected status or an illegal target
        ValidationError: When rejecting without a reason
    """
    target = lifecycle.parse_status(target)
    expected = lifecycle.parse_status(expected_status)
    application = await load_application(session, application_id)
    await change_status(session, application, target, expected, reason, caller)
    await session.commit()
    return serialize_application(application)


async def advance(
    session: AsyncSession,
    application_id: int,
    expected_status: ApplicationStatus | str,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """Approve an application onto the next status of the forward path."""
    expected = lifecycle.parse_status(expected_status)
    application = await load_application(session, application_id)
    lifecycle.check_expected(application.status, expected)

    target = lifecycle.next_status(application.status)
    if target is None:
        raise ConflictError(
            f"Application {application_id} cannot advance from {application.status.value}",
            {"status": application.status.value},
        )
    await change_status(session, application, target, expected, caller=caller)
    await session.commit()
    return serialize_application(application)


async def reject(
    session: AsyncSession,
    application_id: int,
    expected_status: ApplicationStatus | str,
    reason: Optional[str],
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """Reject an application; a non-blank reason is required."""
    lifecycle.require_reason(reason)
    return await transition(
        session, application_id, ApplicationStatus.REJECTED, expected_status, reason, caller
    )


async def move_stage(
    session: AsyncSession,
    application_id: int,
    stage_id: int,
    expected_stage_id: Optional[int] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Move an application to another kanban column.

    Only the stage and last activity time change; status is untouched.

    Args:
        session: Database session
        application_id: Application to move
        stage_id: Target stage
        expected_stage_id: Stage the caller saw the application in
            (None for an unplaced application)
        caller: Acting user

    Raises:
        NotFoundError: If the application or stage does not exist
        ValidationError: If the stage belongs to another pipeline
        ConflictError: If the application is no longer in the expected stage
    """
    application = await load_application(session, application_id)
    stage = await get_or_404(session, PipelineStage, stage_id, "Stage")
    job = await get_or_404(session, JobPosting, application.job_id, "Job")

    if job.pipeline_id is not None and stage.pipeline_id != job.pipeline_id:
        raise ValidationError(
            f"Stage {stage_id} is not part of pipeline {job.pipeline_id}",
            {"stage_id": stage_id, "pipeline_id": job.pipeline_id},
        )

    previous = application.current_stage_id
    await guarded_update(
        session,
        application,
        "current_stage_id",
        expected_stage_id,
        {"current_stage_id": stage_id, "last_activity_at": now()},
        "Application",
    )
    record_activity(
        session,
        application.id,
        ApplicationActivityType.STAGE_CHANGED,
        f"Moved to {stage.name}",
        {"from_stage_id": previous, "to_stage_id": stage_id},
        caller,
    )
    await session.commit()
    logger.info(
        f"Application {application_id} moved to stage {stage_id}",
        extra={"application_id": application_id},
    )
    return serialize_application(application)
