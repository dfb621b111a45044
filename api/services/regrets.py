"""
Regret (unsuccessful application) messaging.

Delivery always happens after the state change it reports has been
committed; a failed delivery is logged and counted, never rolled back
into the application's state.
"""

from typing import Any, Callable, Optional, Sequence
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ConflictError, DeliveryError, ValidationError
from core.integrations.email import MessageSender
from core.middleware.authorization import CallerContext
from core.utils.datetime import isoformat
from core.utils.formatting import mask_email, render_template
from database.models.applications import Application, ApplicationActivityType, ApplicationStatus
from database.models.communications import RegretTemplate
from database.models.jobs import JobPosting
from database.repository import get_or_404
from recruitment import lifecycle

from api.services.applications import (
    change_status,
    load_application,
    record_activity,
    serialize_application,
)

logger = logging.getLogger(__name__)

DEFAULT_REGRET_SUBJECT = "Application Update: {{jobTitle}}"
DEFAULT_REGRET_BODY = (
    "Dear {{firstName}},\n"
    "Thank you for your interest in {{jobTitle}} at {{company}}. "
    "After review, we won't proceed at this time.\n\n"
    "Kind regards,\n"
    "{{company}} HR"
)
REGRET_REJECTION_REASON = "regret sent"


def serialize_template(template: RegretTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "subject": template.subject,
        "body_text": template.body_text,
        "locale": template.locale,
        "job_id": template.job_id,
        "created_at": isoformat(template.created_at),
    }


def regret_variables(application: Application, job: Optional[JobPosting]) -> dict[str, Any]:
    return {
        "firstName": application.first_name,
        "lastName": application.last_name,
        "jobTitle": job.title if job else None,
        "branch": job.branch if job else None,
        "region": job.region if job else None,
        "company": settings.company_name,
    }


def render_regret(
    application: Application,
    job: Optional[JobPosting],
    template: Optional[RegretTemplate] = None,
) -> tuple[str, str]:
    """Subject and body of a regret message."""
    variables = regret_variables(application, job)
    subject = template.subject if template else DEFAULT_REGRET_SUBJECT
    body = template.body_text if template else DEFAULT_REGRET_BODY
    return render_template(subject, variables), render_template(body, variables)


async def create_template(
    session: AsyncSession,
    name: str,
    subject: str,
    body_text: str,
    locale: str = "en",
    job_id: Optional[int] = None,
) -> dict[str, Any]:
    if not (name or "").strip() or not (subject or "").strip() or not (body_text or "").strip():
        raise ValidationError("Template name, subject and body are required")
    if job_id is not None:
        await get_or_404(session, JobPosting, job_id, "Job")
    template = RegretTemplate(
        name=name.strip(), subject=subject.strip(), body_text=body_text, locale=locale, job_id=job_id
    )
    session.add(template)
    await session.commit()
    return serialize_template(template)


async def list_templates(session: AsyncSession, job_id: Optional[int] = None) -> list[dict[str, Any]]:
    query = select(RegretTemplate).order_by(RegretTemplate.created_at.desc(), RegretTemplate.id.desc())
    if job_id is not None:
        query = query.where(RegretTemplate.job_id == job_id)
    result = await session.execute(query)
    return [serialize_template(t) for t in result.scalars().all()]


async def _pick_template(
    session: AsyncSession, job_id: int, template_id: Optional[int]
) -> Optional[RegretTemplate]:
    """Explicit template, else the newest one scoped to the job, else None."""
    if template_id is not None:
        return await get_or_404(session, RegretTemplate, template_id, "Regret template")
    result = await session.execute(
        select(RegretTemplate)
        .where(RegretTemplate.job_id == job_id)
        .order_by(RegretTemplate.created_at.desc(), RegretTemplate.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _deliver(
    session: AsyncSession,
    sender: MessageSender,
    application: Application,
    job: Optional[JobPosting],
    template: Optional[RegretTemplate],
    caller: Optional[CallerContext] = None,
) -> bool:
    """Send one regret and, on success, add the timeline entry. Does not commit."""
    subject, body = render_regret(application, job, template)
    try:
        receipt = await sender.send_message(application.email, subject, body)
    except DeliveryError as e:
        logger.warning(
            f"Regret to {mask_email(application.email)} failed: {e}",
            extra={"application_id": application.id},
        )
        return False

    record_activity(
        session,
        application.id,
        ApplicationActivityType.REGRET_SENT,
        "Regret sent",
        {"template_id": template.id if template else None, "message_id": receipt.message_id},
        caller,
    )
    return True


async def send_regret(
    session: AsyncSession,
    sender: MessageSender,
    application_id: int,
    template_id: Optional[int] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Reject an application (unless already rejected) and tell the applicant.

    The rejection commits first; delivery failure leaves it in place and
    is reported as ``delivered: False``.

    Args:
        session: Database session
        sender: Message delivery collaborator
        application_id: Application to regret
        template_id: Regret template (default: job-scoped or built-in)
        caller: Acting user

    Returns:
        Dictionary with the application and whether delivery succeeded

    Raises:
        NotFoundError: If the application or template does not exist
        ConflictError: If the application was accepted
    """
    application = await load_application(session, application_id)
    if application.status == ApplicationStatus.ACCEPTED:
        raise ConflictError(
            f"Application {application_id} was accepted; no regret can be sent",
            {"status": application.status.value},
        )
    template = await _pick_template(session, application.job_id, template_id)

    if not lifecycle.is_terminal(application.status):
        await change_status(
            session,
            application,
            ApplicationStatus.REJECTED,
            application.status,
            reason=REGRET_REJECTION_REASON,
            caller=caller,
        )
        await session.commit()

    job = await session.get(JobPosting, application.job_id)
    delivered = await _deliver(session, sender, application, job, template, caller)
    await session.commit()

    return {"application": serialize_application(application), "delivered": delivered}


async def send_regret_batch(
    session: AsyncSession,
    sender: MessageSender,
    job_id: int,
    template_id: Optional[int] = None,
    status_filter: Optional[Sequence[ApplicationStatus | str]] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, int]:
    """
    Send regrets to every application of a job in the given statuses.

    Each recipient is independent: a failed delivery is logged and
    counted, and the batch carries on.

    Args:
        session: Database session
        sender: Message delivery collaborator
        job_id: Job whose applicants are messaged
        template_id: Regret template (default: job-scoped or built-in)
        status_filter: Statuses to include (default: REJECTED)
        caller: Acting user

    Returns:
        ``{"sent": n, "failed": n, "total": n}``
    """
    job = await get_or_404(session, JobPosting, job_id, "Job")
    template = await _pick_template(session, job_id, template_id)
    statuses = [lifecycle.parse_status(s) for s in (status_filter or [ApplicationStatus.REJECTED])]

    result = await session.execute(
        select(Application)
        .where(Application.job_id == job_id, Application.status.in_(statuses))
        .order_by(Application.id)
    )
    applications = result.scalars().all()

    sent = failed = 0
    for application in applications:
        try:
            delivered = await _deliver(session, sender, application, job, template, caller)
        except Exception:
            logger.error(
                f"Regret to {mask_email(application.email)} crashed",
                exc_info=True,
                extra={"application_id": application.id},
            )
            delivered = False

        if delivered:
            # Committed per recipient
            await session.commit()
            sent += 1
        else:
            failed += 1

    logger.info(
        f"Regret batch for job {job_id}: {sent} sent, {failed} failed of {len(applications)}",
        extra={"job_id": job_id},
    )
    return {"sent": sent, "failed": failed, "total": len(applications)}


async def deliver_auto_regret(
    session_factory: Callable[[], AsyncSession],
    sender: MessageSender,
    application_id: int,
) -> bool:
    """
    Background delivery of the regret for an auto-rejected application.

    Runs after the application has been committed. Nothing is raised:
    any failure is logged and the committed application is untouched.
    """
    try:
        async with session_factory() as session:
            application = await load_application(session, application_id)
            job = await session.get(JobPosting, application.job_id)
            template = await _pick_template(session, application.job_id, None)
            delivered = await _deliver(session, sender, application, job, template)
            await session.commit()
            return delivered
    except Exception:
        logger.error(f"Auto-regret for application {application_id} crashed", exc_info=True)
        return False
