"""
Reviewer notes and tags on applications.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CallerContext, Permission, get_db, require_permission
from api.schemas.common import ERROR_RESPONSES
from api.services import notes as note_service

router = APIRouter(tags=["notes"], responses=ERROR_RESPONSES)


class NoteRequest(BaseModel):
    """Request model for a note."""
    content: str = Field(..., min_length=1, max_length=10000)
    is_internal: bool = Field(True, description="Hidden from the candidate")


class UpdateNoteRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class TagRequest(BaseModel):
    """Request model for a tag."""
    name: str = Field(..., min_length=1, max_length=60)
    color: Optional[str] = Field(None, description="Hex color, e.g. #10B981")
    category: Optional[str] = Field(None, max_length=50)


# ==================== Notes ==================== #

@router.get(
    "/applications/{application_id}/notes",
    summary="List Notes",
    description="Notes newest first. Requires application:read permission.",
)
async def list_notes(
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await note_service.list_notes(db, application_id)


@router.post(
    "/applications/{application_id}/notes",
    status_code=status.HTTP_201_CREATED,
    summary="Add Note",
    description="Requires application:note permission.",
)
async def add_note(
    request: NoteRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_NOTE)),
):
    return await note_service.add_note(
        db, application_id, request.content, caller, request.is_internal
    )


@router.patch(
    "/notes/{note_id}",
    summary="Edit Note",
    description="Only the author may edit. Requires application:note permission.",
)
async def update_note(
    request: UpdateNoteRequest,
    note_id: int = Path(..., description="Note ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_NOTE)),
):
    return await note_service.update_note(db, note_id, request.content, caller)


@router.delete(
    "/notes/{note_id}",
    summary="Delete Note",
    description="The author or HR may delete. Requires application:note permission.",
)
async def delete_note(
    note_id: int = Path(..., description="Note ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_NOTE)),
):
    return await note_service.delete_note(db, note_id, caller)


# ==================== Tags ==================== #

@router.get(
    "/applications/{application_id}/tags",
    summary="List Tags",
    description="Requires application:read permission.",
)
async def list_tags(
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await note_service.list_tags(db, application_id)


@router.post(
    "/applications/{application_id}/tags",
    status_code=status.HTTP_201_CREATED,
    summary="Add Tag",
    description="Requires application:note permission.",
)
async def add_tag(
    request: TagRequest,
    application_id: int = Path(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_NOTE)),
):
    return await note_service.add_tag(db, application_id, caller=caller, **request.model_dump())


@router.delete(
    "/tags/{tag_id}",
    summary="Remove Tag",
    description="Requires application:note permission.",
)
async def remove_tag(
    tag_id: int = Path(..., description="Tag ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_NOTE)),
):
    return await note_service.remove_tag(db, tag_id, caller)
