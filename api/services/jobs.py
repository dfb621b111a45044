"""Job posting and rule set service functions."""

from datetime import date
from typing import Any, Optional
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ValidationError
from core.utils.datetime import isoformat, today
from database.models.applications import Application
from database.models.jobs import EmploymentType, JobPosting, JobStatus, RuleSet
from database.models.pipelines import Pipeline
from database.repository import get_or_404
from recruitment.rules import RuleConfig, validate_rule_set

logger = logging.getLogger(__name__)


def serialize_job(job: JobPosting) -> dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "description": job.description,
        "branch": job.branch,
        "region": job.region,
        "employment_type": job.employment_type.value,
        "deadline": isoformat(job.deadline),
        "status": job.status.value,
        "pipeline_id": job.pipeline_id,
        "accepting_applications": is_accepting_applications(job),
        "created_at": isoformat(job.created_at),
    }


def serialize_rule_set(rule_set: RuleSet) -> dict[str, Any]:
    return {
        "job_id": rule_set.job_id,
        "must_have": list(rule_set.must_have or []),
        "preferred": list(rule_set.preferred or []),
        "shortlist_threshold": rule_set.shortlist_threshold,
        "reject_threshold": rule_set.reject_threshold,
        "auto_regret": rule_set.auto_regret,
        "updated_at": isoformat(rule_set.updated_at),
    }


def is_accepting_applications(job: JobPosting, on: Optional[date] = None) -> bool:
    """An ACTIVE job whose deadline, if any, has not passed."""
    if job.status != JobStatus.ACTIVE:
        return False
    if job.deadline is None:
        return True
    return job.deadline >= (on or today())


def job_text(job: JobPosting) -> str:
    """Title on the first line, description after it."""
    return f"{job.title}\n{job.description or ''}"


async def _check_pipeline(session: AsyncSession, pipeline_id: Optional[int]) -> None:
    if pipeline_id is not None:
        await get_or_404(session, Pipeline, pipeline_id, "Pipeline")


async def create_job(
    session: AsyncSession,
    title: str,
    description: str = "",
    branch: Optional[str] = None,
    region: Optional[str] = None,
    employment_type: EmploymentType = EmploymentType.FULL_TIME,
    deadline: Optional[date] = None,
    pipeline_id: Optional[int] = None,
) -> dict[str, Any]:
    """Create an ACTIVE job posting."""
    if not title or not title.strip():
        raise ValidationError("Job title is required", {"field": "title"})
    await _check_pipeline(session, pipeline_id)

    job = JobPosting(
        title=title.strip(),
        description=description or "",
        branch=branch,
        region=region,
        employment_type=employment_type,
        deadline=deadline,
        status=JobStatus.ACTIVE,
        pipeline_id=pipeline_id,
    )
    session.add(job)
    await session.commit()
    logger.info(f"Job {job.id} created: {job.title}", extra={"job_id": job.id})
    return serialize_job(job)


async def get_job(session: AsyncSession, job_id: int) -> dict[str, Any]:
    job = await get_or_404(session, JobPosting, job_id, "Job")
    return serialize_job(job)


async def list_jobs(
    session: AsyncSession,
    status: Optional[JobStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """List job postings, newest first."""
    query = select(JobPosting).order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
    if status is not None:
        query = query.where(JobPosting.status == status)
    result = await session.execute(query.limit(limit).offset(offset))
    return [serialize_job(job) for job in result.scalars().all()]


async def close_job(session: AsyncSession, job_id: int) -> dict[str, Any]:
    """Stop a job from accepting applications."""
    job = await get_or_404(session, JobPosting, job_id, "Job")
    if job.status == JobStatus.CLOSED:
        raise ConflictError(f"Job {job_id} is already closed", {"status": job.status.value})
    job.status = JobStatus.CLOSED
    await session.commit()
    logger.info(f"Job {job_id} closed", extra={"job_id": job_id})
    return serialize_job(job)


async def delete_job(session: AsyncSession, job_id: int) -> dict[str, Any]:
    """
    Remove a job that never received applications.

    Its rule set and screening questions are dropped with it by the
    database cascade.

    Raises:
        NotFoundError: If the job does not exist
        ConflictError: Once any application was made; close the job instead
    """
    job = await get_or_404(session, JobPosting, job_id, "Job")
    applications = await session.scalar(
        select(func.count(Application.id)).where(Application.job_id == job_id)
    )
    if applications:
        raise ConflictError(
            f"Cannot delete job {job_id} with {applications} applications",
            {"job_id": job_id, "applications": applications},
        )

    await session.execute(delete(JobPosting).where(JobPosting.id == job_id))
    session.expunge(job)
    await session.commit()
    logger.info(f"Job {job_id} deleted", extra={"job_id": job_id})
    return {"id": job_id, "deleted": True}


async def attach_pipeline(
    session: AsyncSession, job_id: int, pipeline_id: Optional[int]
) -> dict[str, Any]:
    """Set (or clear) the pipeline a job's applications move across."""
    job = await get_or_404(session, JobPosting, job_id, "Job")
    await _check_pipeline(session, pipeline_id)
    job.pipeline_id = pipeline_id
    await session.commit()
    return serialize_job(job)


# ==================== Rule sets ===================== #

async def load_rule_set(session: AsyncSession, job_id: int) -> Optional[RuleSet]:
    result = await session.execute(select(RuleSet).where(RuleSet.job_id == job_id))
    return result.scalar_one_or_none()


async def load_rule_config(session: AsyncSession, job_id: int) -> RuleConfig:
    """Stored rules for a job, or the defaults when it has none."""
    return RuleConfig.from_model(await load_rule_set(session, job_id))


async def upsert_rule_set(
    session: AsyncSession,
    job_id: int,
    must_have: Optional[list[str]] = None,
    preferred: Optional[list[str]] = None,
    shortlist_threshold: Optional[float] = None,
    reject_threshold: Optional[float] = None,
    auto_regret: bool = False,
) -> dict[str, Any]:
    """
    Create or replace a job's rule set.

    Validation runs before anything is written, so an invalid rule set
    leaves the stored one untouched.

    Raises:
        NotFoundError: If the job does not exist
        ValidationError: On invalid thresholds
    """
    await get_or_404(session, JobPosting, job_id, "Job")
    config = validate_rule_set(
        must_have=must_have,
        preferred=preferred,
        shortlist_threshold=shortlist_threshold,
        reject_threshold=reject_threshold,
        auto_regret=auto_regret,
    )

    rule_set = await load_rule_set(session, job_id)
    if rule_set is None:
        rule_set = RuleSet(job_id=job_id)
        session.add(rule_set)

    rule_set.must_have = list(config.must_have)
    rule_set.preferred = list(config.preferred)
    rule_set.shortlist_threshold = config.shortlist_threshold
    rule_set.reject_threshold = config.reject_threshold
    rule_set.auto_regret = config.auto_regret
    await session.commit()
    await session.refresh(rule_set)

    logger.info(
        f"Rule set saved for job {job_id}: {len(config.must_have)} must-have, "
        f"{len(config.preferred)} preferred, thresholds "
        f"{config.shortlist_threshold}/{config.reject_threshold}",
        extra={"job_id": job_id},
    )
    return serialize_rule_set(rule_set)


async def get_rule_set(session: AsyncSession, job_id: int) -> Optional[dict[str, Any]]:
    """Stored rule set for a job, or None when it has none."""
    await get_or_404(session, JobPosting, job_id, "Job")
    rule_set = await load_rule_set(session, job_id)
    return serialize_rule_set(rule_set) if rule_set else None
