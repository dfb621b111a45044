"""
Regret messaging endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CallerContext,
    Permission,
    get_db,
    get_message_sender,
    require_permission,
)
from api.schemas.common import ERROR_RESPONSES, DeliveryResult
from api.services import regrets as regret_service
from core.integrations.email import MessageSender
from database.models.applications import ApplicationStatus
from workers.tasks.regrets import send_regret_batch as send_regret_batch_task

router = APIRouter(prefix="/regrets", tags=["regrets"], responses=ERROR_RESPONSES)


class CreateTemplateRequest(BaseModel):
    """Request model for a regret template."""
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    body_text: str = Field(..., min_length=1, description="Body with {{placeholder}} fields")
    locale: str = Field("en", max_length=10)
    job_id: Optional[int] = Field(None, description="Scope the template to one job")


class BatchRegretRequest(BaseModel):
    """Request model for a batch of regrets."""
    job_id: int = Field(..., description="Job whose applicants are messaged")
    template_id: Optional[int] = Field(None, description="Regret template to use")
    status_filter: list[ApplicationStatus] = Field(
        default_factory=lambda: [ApplicationStatus.REJECTED],
        description="Application statuses to include",
    )
    queue: bool = Field(False, description="Hand the batch to a background worker")


@router.post(
    "/templates",
    status_code=status.HTTP_201_CREATED,
    summary="Create Regret Template",
    description="Requires template:manage permission.",
)
async def create_template(
    request: CreateTemplateRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.TEMPLATE_MANAGE)),
):
    return await regret_service.create_template(db, **request.model_dump())


@router.get(
    "/templates",
    summary="List Regret Templates",
    description="Newest first. Requires regret:send permission.",
)
async def list_templates(
    job_id: Optional[int] = Query(None, description="Only templates scoped to this job"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.REGRET_SEND)),
):
    return await regret_service.list_templates(db, job_id)


@router.post(
    "/batch",
    response_model=DeliveryResult,
    summary="Send Regret Batch",
    description=(
        "Message every applicant of a job in the given statuses; failures "
        "are counted, not raised. Requires regret:send permission."
    ),
)
async def send_regret_batch(
    request: BatchRegretRequest,
    db: AsyncSession = Depends(get_db),
    sender: MessageSender = Depends(get_message_sender),
    caller: CallerContext = Depends(require_permission(Permission.REGRET_SEND)),
):
    if request.queue:
        task = send_regret_batch_task.delay(
            request.job_id,
            request.template_id,
            [s.value for s in request.status_filter],
        )
        return JSONResponse(status_code=202, content={"task_id": task.id})
    return await regret_service.send_regret_batch(
        db,
        sender,
        request.job_id,
        request.template_id,
        request.status_filter,
        caller,
    )
