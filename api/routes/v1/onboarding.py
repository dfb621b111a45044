"""
Onboarding checklist endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CallerContext, Permission, get_db, require_permission
from api.schemas.common import ERROR_RESPONSES
from api.services import onboarding as onboarding_service

router = APIRouter(prefix="/onboarding", tags=["onboarding"], responses=ERROR_RESPONSES)


class CreateTaskRequest(BaseModel):
    """Request model for a checklist task template."""
    code: str = Field(..., min_length=1, max_length=80, description="Stable task code")
    label: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None)
    sort_order: Optional[int] = Field(None, description="Position (default: last)")


class InitChecklistRequest(BaseModel):
    application_id: int = Field(..., description="Application with an accepted offer")


class CompleteItemRequest(BaseModel):
    evidence_ref: Optional[str] = Field(None, max_length=500, description="Uploaded evidence reference")


@router.post(
    "/tasks/seed",
    summary="Seed Default Tasks",
    description="Insert the default task templates when none exist. Requires onboarding:manage permission.",
)
async def seed_default_tasks(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_MANAGE)),
):
    return await onboarding_service.seed_default_tasks(db)


@router.get(
    "/tasks",
    summary="List Tasks",
    description="Requires onboarding:read permission.",
)
async def list_tasks(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_READ)),
):
    return await onboarding_service.list_tasks(db)


@router.post(
    "/tasks",
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Requires onboarding:manage permission.",
)
async def create_task(
    request: CreateTaskRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_MANAGE)),
):
    return await onboarding_service.create_task(db, **request.model_dump())


@router.post(
    "/init",
    summary="Initialize Checklist",
    description=(
        "Create the checklist of a hired applicant; safe to repeat. "
        "Requires onboarding:manage permission."
    ),
)
async def init_checklist(
    request: InitChecklistRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_MANAGE)),
):
    return await onboarding_service.init_checklist(db, request.application_id, caller)


@router.post(
    "/items/{item_id}/complete",
    summary="Complete Item",
    description="Mark a checklist item done. Requires onboarding:complete permission.",
)
async def complete_item(
    request: Optional[CompleteItemRequest] = None,
    item_id: int = Path(..., description="Checklist item ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_COMPLETE)),
):
    evidence_ref = request.evidence_ref if request else None
    return await onboarding_service.complete_item(db, item_id, evidence_ref)


@router.get(
    "/{application_id}",
    summary="Get Checklist",
    description="Requires onboarding:read permission.",
)
async def list_items(
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.ONBOARDING_READ)),
):
    return await onboarding_service.list_items(db, application_id)
