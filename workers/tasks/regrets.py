"""Regret delivery tasks."""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from workers.celery_app import celery_app
from core.config import settings
from core.integrations.email import EmailService
from database.engine import create_engine_for_url
from api.services import regrets as regret_service

logger = logging.getLogger(__name__)


async def _run_batch(
    job_id: int,
    template_id: Optional[int],
    status_filter: Optional[list[str]],
) -> dict:
    # Each task runs in its own event loop; pooled connections cannot cross loops
    engine = create_engine_for_url(settings.database_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as session:
            return await regret_service.send_regret_batch(
                session,
                EmailService(),
                job_id,
                template_id=template_id,
                status_filter=status_filter,
            )
    finally:
        await engine.dispose()


@celery_app.task(name="workers.tasks.regrets.send_regret_batch")
def send_regret_batch(
    job_id: int,
    template_id: Optional[int] = None,
    status_filter: Optional[list[str]] = None,
) -> dict:
    """Send regrets to a job's applicants off the request path.

    Args:
        job_id: Job whose applicants are messaged
        template_id: Regret template (default: job-scoped or built-in)
        status_filter: Application statuses to include (default: REJECTED)

    Returns:
        ``{"sent", "failed", "total"}`` counts
    """
    result = asyncio.run(_run_batch(job_id, template_id, status_filter))
    logger.info(f"Regret batch task for job {job_id} finished: {result}")
    return result
