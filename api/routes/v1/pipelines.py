"""
Pipeline (kanban) endpoints.

Provides REST API for pipelines, their ordered stages and the board view.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CallerContext, Permission, get_db, require_permission
from api.schemas.common import ERROR_RESPONSES
from api.services import pipelines as pipeline_service

router = APIRouter(prefix="/pipelines", tags=["pipelines"], responses=ERROR_RESPONSES)

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class StageDefinition(BaseModel):
    """Stage within a new pipeline."""
    name: str = Field(..., min_length=1, max_length=255)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN, description="Hex color")
    description: Optional[str] = Field(None)


class CreatePipelineRequest(BaseModel):
    """Request model for creating a pipeline."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None)
    is_default: bool = Field(False, description="Make this the default pipeline")
    stages: list[StageDefinition] = Field(default_factory=list, description="Stages in order")


class ReorderStagesRequest(BaseModel):
    """Every stage id of the pipeline, in the new order."""
    stage_ids: list[int] = Field(..., description="Stage ids in their new order")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Pipeline",
    description="Create a pipeline with ordered stages. Requires pipeline:manage permission.",
)
async def create_pipeline(
    request: CreatePipelineRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_MANAGE)),
):
    return await pipeline_service.create_pipeline(
        db,
        name=request.name,
        description=request.description,
        is_default=request.is_default,
        stages=[stage.model_dump() for stage in request.stages],
    )


@router.get(
    "",
    summary="List Pipelines",
    description="List pipelines, default first. Requires pipeline:read permission.",
)
async def list_pipelines(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_READ)),
):
    return await pipeline_service.list_pipelines(db)


@router.get(
    "/{pipeline_id}",
    summary="Get Pipeline",
    description="Get a pipeline and its stages. Requires pipeline:read permission.",
)
async def get_pipeline(
    pipeline_id: int = Path(..., description="Pipeline ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_READ)),
):
    return await pipeline_service.get_pipeline(db, pipeline_id)


@router.post(
    "/{pipeline_id}/stages",
    status_code=status.HTTP_201_CREATED,
    summary="Add Stage",
    description="Append a stage. Requires pipeline:manage permission.",
)
async def add_stage(
    request: StageDefinition,
    pipeline_id: int = Path(..., description="Pipeline ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_MANAGE)),
):
    return await pipeline_service.add_stage(
        db, pipeline_id, request.name, request.color, request.description
    )


@router.post(
    "/{pipeline_id}/stages/reorder",
    summary="Reorder Stages",
    description="Set the order of all stages. Requires pipeline:manage permission.",
)
async def reorder_stages(
    request: ReorderStagesRequest,
    pipeline_id: int = Path(..., description="Pipeline ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_MANAGE)),
):
    return await pipeline_service.reorder_stages(db, pipeline_id, request.stage_ids)


@router.delete(
    "/stages/{stage_id}",
    summary="Delete Stage",
    description="Delete an empty stage. Requires pipeline:manage permission.",
)
async def delete_stage(
    stage_id: int = Path(..., description="Stage ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_MANAGE)),
):
    return await pipeline_service.delete_stage(db, stage_id)


@router.get(
    "/{pipeline_id}/board",
    summary="Kanban Board",
    description="Stages with their applications. Requires pipeline:read permission.",
)
async def get_board(
    pipeline_id: int = Path(..., description="Pipeline ID"),
    job_id: Optional[int] = Query(None, description="Only applications for this job"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.PIPELINE_READ)),
):
    return await pipeline_service.get_board(db, pipeline_id, job_id)
