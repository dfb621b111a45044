"""Onboarding checklist service functions."""

from typing import Any, Optional
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, ValidationError
from core.middleware.authorization import CallerContext
from core.utils.datetime import isoformat, now
from database.models.applications import ApplicationActivityType
from database.models.offers import Offer
from database.models.onboarding import OnboardingItem, OnboardingTask
from database.repository import get_or_404, insert_ignore_conflicts
from recruitment import onboarding as onboarding_rules

from api.services.applications import load_application, record_activity

logger = logging.getLogger(__name__)


def serialize_task(task: OnboardingTask) -> dict[str, Any]:
    return {
        "id": task.id,
        "code": task.code,
        "label": task.label,
        "description": task.description,
        "sort_order": task.sort_order,
    }


def serialize_item(item: OnboardingItem, task: Optional[OnboardingTask] = None) -> dict[str, Any]:
    data = {
        "id": item.id,
        "application_id": item.application_id,
        "task_id": item.task_id,
        "completed": item.completed,
        "completed_at": isoformat(item.completed_at),
        "evidence_ref": item.evidence_ref,
    }
    if task is not None:
        data["code"] = task.code
        data["label"] = task.label
    return data


async def seed_default_tasks(session: AsyncSession) -> list[dict[str, Any]]:
    """Insert the default task templates when no task exists yet."""
    count = await session.scalar(select(func.count(OnboardingTask.id)))
    if not count:
        for order, (code, label, description) in enumerate(onboarding_rules.DEFAULT_TASKS, 1):
            session.add(
                OnboardingTask(code=code, label=label, description=description, sort_order=order)
            )
        await session.commit()
        logger.info(f"Seeded {len(onboarding_rules.DEFAULT_TASKS)} onboarding tasks")
    return await list_tasks(session)


async def create_task(
    session: AsyncSession,
    code: str,
    label: str,
    description: Optional[str] = None,
    sort_order: Optional[int] = None,
) -> dict[str, Any]:
    """
    Add a task template to every future checklist.

    Raises:
        ValidationError: If code or label is blank
        ConflictError: If the code is taken
    """
    code = (code or "").strip()
    if not code or not (label or "").strip():
        raise ValidationError("Task code and label are required")

    existing = await session.scalar(select(OnboardingTask.id).where(OnboardingTask.code == code))
    if existing is not None:
        raise ConflictError(f"Onboarding task {code} already exists", {"code": code})

    if sort_order is None:
        last = await session.scalar(select(func.max(OnboardingTask.sort_order)))
        sort_order = (last or 0) + 1

    task = OnboardingTask(code=code, label=label.strip(), description=description, sort_order=sort_order)
    session.add(task)
    await session.commit()
    return serialize_task(task)


async def list_tasks(session: AsyncSession) -> list[dict[str, Any]]:
    result = await session.execute(
        select(OnboardingTask).order_by(OnboardingTask.sort_order, OnboardingTask.id)
    )
    return [serialize_task(t) for t in result.scalars().all()]


async def list_items(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    """Checklist of an application in task order."""
    await load_application(session, application_id)
    result = await session.execute(
        select(OnboardingItem, OnboardingTask)
        .join(OnboardingTask, OnboardingTask.id == OnboardingItem.task_id)
        .where(OnboardingItem.application_id == application_id)
        .order_by(OnboardingTask.sort_order, OnboardingItem.id)
    )
    return [serialize_item(item, task) for item, task in result.all()]


async def init_checklist(
    session: AsyncSession,
    application_id: int,
    caller: Optional[CallerContext] = None,
) -> list[dict[str, Any]]:
    """
    Materialize the onboarding checklist for a hired applicant.

    Safe to call repeatedly or concurrently: missing (application, task)
    pairs are inserted and existing ones are left alone, so the checklist
    ends up with exactly one item per task.

    Args:
        session: Database session
        application_id: Application with an accepted offer
        caller: Acting user

    Returns:
        The application's checklist items

    Raises:
        NotFoundError: If the application does not exist
        PreconditionFailedError: If no offer of the application was accepted
    """
    await load_application(session, application_id)
    statuses = await session.scalars(
        select(Offer.status).where(Offer.application_id == application_id)
    )
    onboarding_rules.check_can_init(application_id, statuses.all())

    existing = await session.scalar(
        select(func.count(OnboardingItem.id)).where(OnboardingItem.application_id == application_id)
    )
    task_ids = (await session.scalars(select(OnboardingTask.id))).all()
    await insert_ignore_conflicts(
        session,
        OnboardingItem,
        [{"application_id": application_id, "task_id": task_id} for task_id in task_ids],
        ["application_id", "task_id"],
    )

    if not existing and task_ids:
        record_activity(
            session,
            application_id,
            ApplicationActivityType.ONBOARDING_INITIALIZED,
            "Onboarding checklist created",
            {"tasks": len(task_ids)},
            caller,
        )
    await session.commit()
    logger.info(
        f"Onboarding checklist ready for application {application_id}",
        extra={"application_id": application_id},
    )
    return await list_items(session, application_id)


async def complete_item(
    session: AsyncSession,
    item_id: int,
    evidence_ref: Optional[str] = None,
) -> dict[str, Any]:
    """
    Mark a checklist item complete. Completion is one way.

    Raises:
        NotFoundError: If the item does not exist
        ConflictError: If the item is already complete
    """
    item = await get_or_404(session, OnboardingItem, item_id, "Onboarding item")
    onboarding_rules.check_can_complete(item_id, item.completed)

    result = await session.execute(
        update(OnboardingItem)
        .where(OnboardingItem.id == item_id, OnboardingItem.completed.is_(False))
        .values(completed=True, completed_at=now(), evidence_ref=evidence_ref)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        onboarding_rules.check_can_complete(item_id, True)
    await session.commit()
    await session.refresh(item)

    task = await session.get(OnboardingTask, item.task_id)
    return serialize_item(item, task)
