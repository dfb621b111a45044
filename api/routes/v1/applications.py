"""
Application management endpoints.

Public intake plus the staff-facing status and kanban operations.
"""

from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CallerContext,
    Permission,
    get_db,
    get_message_sender,
    get_pagination,
    get_session_factory,
    require_permission,
)
from api.schemas.common import ERROR_RESPONSES, PaginationParams
from api.services import applications as application_service
from api.services import regrets as regret_service
from core.integrations.email import MessageSender
from core.middleware.authorization import check_permission
from database.models.applications import ApplicantType, ApplicationStatus

router = APIRouter(prefix="/applications", tags=["applications"], responses=ERROR_RESPONSES)


class ApplyRequest(BaseModel):
    """Public application form."""
    job_id: int = Field(..., description="Job applied for")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    applicant_type: ApplicantType = Field(ApplicantType.EXTERNAL)
    resume_text: Optional[str] = Field(None, description="Profile / CV text used for scoring")
    cover_letter: Optional[str] = Field(None)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: str) -> str:
        """Strip whitespace from name fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class TransitionRequest(BaseModel):
    """Guarded status change."""
    target: str = Field(..., description="Target status")
    expected_status: str = Field(..., description="Status the caller last saw")
    reason: Optional[str] = Field(None, description="Required when rejecting")


class AdvanceRequest(BaseModel):
    expected_status: str = Field(..., description="Status the caller last saw")


class RejectRequest(BaseModel):
    expected_status: str = Field(..., description="Status the caller last saw")
    reason: str = Field(..., description="Why the application is rejected")


class MoveStageRequest(BaseModel):
    stage_id: int = Field(..., description="Target pipeline stage")
    expected_stage_id: Optional[int] = Field(
        None, description="Stage the caller last saw (null when unplaced)"
    )


class RegretRequest(BaseModel):
    template_id: Optional[int] = Field(None, description="Regret template to use")


@router.post(
    "/apply",
    status_code=status.HTTP_201_CREATED,
    summary="Apply",
    description="Public endpoint. Scores the application and sets its initial status.",
)
async def apply(
    request: ApplyRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: Callable = Depends(get_session_factory),
    sender: MessageSender = Depends(get_message_sender),
):
    """Submit an application; an automatic regret, when configured, goes out afterwards."""
    result = await application_service.apply(db, **request.model_dump())
    if result.pop("auto_regret"):
        background_tasks.add_task(
            regret_service.deliver_auto_regret,
            session_factory,
            sender,
            result["application"]["id"],
        )
    return result


@router.get(
    "",
    summary="List Applications",
    description="List applications, highest score first. Requires application:read permission.",
)
async def list_applications(
    job_id: Optional[int] = Query(None, description="Filter by job"),
    application_status: Optional[ApplicationStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
    stage_id: Optional[int] = Query(None, description="Filter by pipeline stage"),
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await application_service.list_applications(
        db,
        job_id=job_id,
        status=application_status,
        stage_id=stage_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get(
    "/{application_id}",
    summary="Get Application",
    description="Get an application. Requires application:read permission.",
)
async def get_application(
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await application_service.get_application(db, application_id)


@router.get(
    "/{application_id}/activity",
    summary="Application Timeline",
    description="Activity entries, oldest first. Requires application:read permission.",
)
async def list_activity(
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await application_service.list_activity(db, application_id)


@router.post(
    "/{application_id}/advance",
    summary="Advance Application",
    description="Approve onto the next status. Requires application:advance permission.",
)
async def advance(
    request: AdvanceRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_ADVANCE)),
):
    return await application_service.advance(db, application_id, request.expected_status, caller)


@router.post(
    "/{application_id}/transition",
    summary="Transition Application",
    description="Move to any legal successor status. Requires application:advance permission.",
)
async def transition(
    request: TransitionRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_ADVANCE)),
):
    """Rejecting through this route additionally needs application:reject."""
    if request.target.strip().upper() == ApplicationStatus.REJECTED.value:
        check_permission(caller, Permission.APPLICATION_REJECT)
    return await application_service.transition(
        db,
        application_id,
        request.target,
        request.expected_status,
        request.reason,
        caller,
    )


@router.post(
    "/{application_id}/reject",
    summary="Reject Application",
    description="Reject with a reason. Requires application:reject permission.",
)
async def reject(
    request: RejectRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_REJECT)),
):
    return await application_service.reject(
        db, application_id, request.expected_status, request.reason, caller
    )


@router.post(
    "/{application_id}/move-stage",
    summary="Move Stage",
    description="Move across kanban columns. Requires application:move permission.",
)
async def move_stage(
    request: MoveStageRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_MOVE)),
):
    return await application_service.move_stage(
        db, application_id, request.stage_id, request.expected_stage_id, caller
    )


@router.post(
    "/{application_id}/regret",
    summary="Send Regret",
    description="Reject (if still open) and notify the applicant. Requires regret:send permission.",
)
async def send_regret(
    request: Optional[RegretRequest] = None,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    sender: MessageSender = Depends(get_message_sender),
    caller: CallerContext = Depends(require_permission(Permission.REGRET_SEND)),
):
    return await regret_service.send_regret(
        db,
        sender,
        application_id,
        template_id=request.template_id if request else None,
        caller=caller,
    )
