"""
Job posting management endpoints.

Provides REST API for job postings and their screening rule sets.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CallerContext,
    Permission,
    get_db,
    get_pagination,
    require_permission,
)
from api.schemas.common import ERROR_RESPONSES, PaginationParams
from api.services import jobs as job_service
from database.models.jobs import EmploymentType, JobStatus

router = APIRouter(prefix="/jobs", tags=["jobs"], responses=ERROR_RESPONSES)


class CreateJobRequest(BaseModel):
    """Request model for posting a job."""
    title: str = Field(..., min_length=1, max_length=255, description="Job title")
    description: str = Field("", description="Full job description")
    branch: Optional[str] = Field(None, max_length=255)
    region: Optional[str] = Field(None, max_length=255)
    employment_type: EmploymentType = Field(EmploymentType.FULL_TIME)
    deadline: Optional[date] = Field(None, description="Last day applications are accepted")
    pipeline_id: Optional[int] = Field(None, description="Kanban pipeline for applications")


class AttachPipelineRequest(BaseModel):
    """Request model for attaching a pipeline."""
    pipeline_id: Optional[int] = Field(None, description="Pipeline ID, or null to detach")


class RuleSetRequest(BaseModel):
    """Request model for a job's screening rules."""
    must_have: list[str] = Field(default_factory=list, description="Required keywords")
    preferred: list[str] = Field(default_factory=list, description="Nice-to-have keywords")
    shortlist_threshold: Optional[float] = Field(None, description="Score to shortlist at")
    reject_threshold: Optional[float] = Field(None, description="Score to reject at")
    auto_regret: bool = Field(False, description="Email regrets on automatic rejection")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Post a new job. Requires job:manage permission.",
)
async def create_job(
    request: CreateJobRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_MANAGE)),
):
    """Create an ACTIVE job posting."""
    return await job_service.create_job(db, **request.model_dump())


@router.get(
    "",
    summary="List Jobs",
    description="List job postings, newest first. Requires job:read permission.",
)
async def list_jobs(
    job_status: Optional[JobStatus] = Query(None, alias="status", description="Filter by status"),
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_READ)),
):
    """Retrieve a paginated list of job postings."""
    return await job_service.list_jobs(
        db, status=job_status, limit=pagination.limit, offset=pagination.offset
    )


@router.get(
    "/{job_id}",
    summary="Get Job Details",
    description="Get a job posting. Requires job:read permission.",
)
async def get_job(
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_READ)),
):
    return await job_service.get_job(db, job_id)


@router.post(
    "/{job_id}/close",
    summary="Close Job",
    description="Stop accepting applications. Requires job:manage permission.",
)
async def close_job(
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_MANAGE)),
):
    return await job_service.close_job(db, job_id)


@router.delete(
    "/{job_id}",
    summary="Delete Job",
    description=(
        "Delete a job that has no applications, with its rules and questions. "
        "Requires job:manage permission."
    ),
)
async def delete_job(
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_MANAGE)),
):
    return await job_service.delete_job(db, job_id)


@router.put(
    "/{job_id}/pipeline",
    summary="Attach Pipeline",
    description="Set the kanban pipeline of a job. Requires pipeline:manage permission.",
)
async def attach_pipeline(
    request: AttachPipelineRequest,
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_MANAGE)),
):
    return await job_service.attach_pipeline(db, job_id, request.pipeline_id)


@router.get(
    "/{job_id}/rules",
    summary="Get Rule Set",
    description="Get the screening rules of a job (null when none). Requires job:read permission.",
)
async def get_rule_set(
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_READ)),
):
    return await job_service.get_rule_set(db, job_id)


@router.post(
    "/{job_id}/rules",
    summary="Save Rule Set",
    description="Create or replace the screening rules of a job. Requires rules:manage permission.",
)
@router.put("/{job_id}/rules", include_in_schema=False)
async def upsert_rule_set(
    request: RuleSetRequest,
    job_id: int = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.RULES_MANAGE)),
):
    """Validate and store the keyword lists and thresholds."""
    return await job_service.upsert_rule_set(db, job_id, **request.model_dump())
