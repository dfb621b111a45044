"""
Pipeline service functions.

Stages carry an explicit ``stage_order`` that is always 1..n within a
pipeline. Reordering and deletion recompute the whole sequence.
"""

from typing import Any, Optional, Sequence
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ValidationError
from core.utils.datetime import isoformat
from database.models.applications import Application
from database.models.pipelines import DEFAULT_STAGE_COLOR, Pipeline, PipelineStage
from database.repository import get_or_404

from api.services.applications import serialize_application

logger = logging.getLogger(__name__)


def serialize_stage(stage: PipelineStage) -> dict[str, Any]:
    return {
        "id": stage.id,
        "pipeline_id": stage.pipeline_id,
        "name": stage.name,
        "description": stage.description,
        "color": stage.color,
        "order": stage.stage_order,
    }


def serialize_pipeline(pipeline: Pipeline, stages: Sequence[PipelineStage]) -> dict[str, Any]:
    return {
        "id": pipeline.id,
        "name": pipeline.name,
        "description": pipeline.description,
        "is_default": pipeline.is_default,
        "created_at": isoformat(pipeline.created_at),
        "stages": [serialize_stage(stage) for stage in stages],
    }


async def load_stages(session: AsyncSession, pipeline_id: int) -> list[PipelineStage]:
    result = await session.execute(
        select(PipelineStage)
        .where(PipelineStage.pipeline_id == pipeline_id)
        .order_by(PipelineStage.stage_order)
    )
    return list(result.scalars().all())


async def _renumber(session: AsyncSession, stages: Sequence[PipelineStage]) -> None:
    """
    Assign orders 1..n following the given sequence.

    Two passes keep the (pipeline_id, stage_order) unique constraint
    satisfied while values are swapped.
    """
    for index, stage in enumerate(stages, start=1):
        stage.stage_order = -index
    await session.flush()
    for index, stage in enumerate(stages, start=1):
        stage.stage_order = index
    await session.flush()


async def create_pipeline(
    session: AsyncSession,
    name: str,
    description: Optional[str] = None,
    is_default: bool = False,
    stages: Optional[Sequence[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """
    Create a pipeline with its stages in the given order.

    Args:
        session: Database session
        name: Pipeline name
        description: Optional description
        is_default: Make this the default pipeline (clears the flag elsewhere)
        stages: Stage definitions with ``name`` and optional ``color`` /
            ``description``

    Returns:
        Serialized pipeline with stages
    """
    if not name or not name.strip():
        raise ValidationError("Pipeline name is required", {"field": "name"})

    if is_default:
        await session.execute(
            update(Pipeline).where(Pipeline.is_default.is_(True)).values(is_default=False)
        )

    pipeline = Pipeline(name=name.strip(), description=description, is_default=is_default)
    session.add(pipeline)
    await session.flush()

    created = []
    for order, definition in enumerate(stages or [], start=1):
        stage_name = (definition.get("name") or "").strip()
        if not stage_name:
            raise ValidationError("Stage name is required", {"index": order - 1})
        stage = PipelineStage(
            pipeline_id=pipeline.id,
            name=stage_name,
            description=definition.get("description"),
            color=definition.get("color") or DEFAULT_STAGE_COLOR,
            stage_order=order,
        )
        session.add(stage)
        created.append(stage)

    await session.commit()
    logger.info(f"Pipeline {pipeline.id} created with {len(created)} stages")
    return serialize_pipeline(pipeline, created)


async def get_pipeline(session: AsyncSession, pipeline_id: int) -> dict[str, Any]:
    pipeline = await get_or_404(session, Pipeline, pipeline_id, "Pipeline")
    return serialize_pipeline(pipeline, await load_stages(session, pipeline_id))


async def list_pipelines(session: AsyncSession) -> list[dict[str, Any]]:
    result = await session.execute(
        select(Pipeline).order_by(Pipeline.is_default.desc(), Pipeline.name)
    )
    return [
        serialize_pipeline(pipeline, await load_stages(session, pipeline.id))
        for pipeline in result.scalars().all()
    ]


async def add_stage(
    session: AsyncSession,
    pipeline_id: int,
    name: str,
    color: Optional[str] = None,
    description: Optional[str] = None,
) -> dict[str, Any]:
    """Append a stage after the current last one."""
    await get_or_404(session, Pipeline, pipeline_id, "Pipeline")
    if not name or not name.strip():
        raise ValidationError("Stage name is required", {"field": "name"})

    last = await session.scalar(
        select(func.max(PipelineStage.stage_order)).where(
            PipelineStage.pipeline_id == pipeline_id
        )
    )
    stage = PipelineStage(
        pipeline_id=pipeline_id,
        name=name.strip(),
        description=description,
        color=color or DEFAULT_STAGE_COLOR,
        stage_order=(last or 0) + 1,
    )
    session.add(stage)
    await session.commit()
    return serialize_stage(stage)


async def reorder_stages(
    session: AsyncSession, pipeline_id: int, stage_ids: Sequence[int]
) -> dict[str, Any]:
    """
    Put a pipeline's stages in the given order.

    Raises:
        NotFoundError: If the pipeline does not exist
        ValidationError: Unless ``stage_ids`` is exactly the pipeline's stages
    """
    pipeline = await get_or_404(session, Pipeline, pipeline_id, "Pipeline")
    stages = await load_stages(session, pipeline_id)
    by_id = {stage.id: stage for stage in stages}

    if len(stage_ids) != len(by_id) or set(stage_ids) != set(by_id):
        raise ValidationError(
            "Stage ids must list every stage of the pipeline exactly once",
            {"expected": sorted(by_id), "given": list(stage_ids)},
        )

    ordered = [by_id[stage_id] for stage_id in stage_ids]
    await _renumber(session, ordered)
    await session.commit()
    logger.info(f"Pipeline {pipeline_id} stages reordered: {list(stage_ids)}")
    return serialize_pipeline(pipeline, ordered)


async def delete_stage(session: AsyncSession, stage_id: int) -> dict[str, Any]:
    """
    Remove an empty stage and close the gap in the ordering.

    Raises:
        NotFoundError: If the stage does not exist
        ConflictError: While applications sit in the stage
    """
    stage = await get_or_404(session, PipelineStage, stage_id, "Stage")
    occupied = await session.scalar(
        select(func.count(Application.id)).where(Application.current_stage_id == stage_id)
    )
    if occupied:
        raise ConflictError(
            f"Cannot delete stage with {occupied} active applications",
            {"stage_id": stage_id, "applications": occupied},
        )

    pipeline_id = stage.pipeline_id
    await session.execute(delete(PipelineStage).where(PipelineStage.id == stage_id))
    session.expunge(stage)

    remaining = await load_stages(session, pipeline_id)
    await _renumber(session, remaining)
    await session.commit()

    pipeline = await get_or_404(session, Pipeline, pipeline_id, "Pipeline")
    return serialize_pipeline(pipeline, remaining)


async def get_board(
    session: AsyncSession, pipeline_id: int, job_id: Optional[int] = None
) -> dict[str, Any]:
    """
    Kanban view: stages in order, each with its applications.

    Applications within a column are ordered by most recent activity.
    """
    pipeline = await get_or_404(session, Pipeline, pipeline_id, "Pipeline")
    stages = await load_stages(session, pipeline_id)

    query = select(Application).where(
        Application.current_stage_id.in_([stage.id for stage in stages])
    )
    if job_id is not None:
        query = query.where(Application.job_id == job_id)
    query = query.order_by(Application.last_activity_at.desc(), Application.id.desc())
    applications = (await session.execute(query)).scalars().all()

    columns = {stage.id: [] for stage in stages}
    for application in applications:
        columns[application.current_stage_id].append(serialize_application(application))

    return {
        "pipeline": serialize_pipeline(pipeline, stages),
        "columns": [
            {**serialize_stage(stage), "applications": columns[stage.id]}
            for stage in stages
        ],
    }
