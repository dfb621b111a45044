"""
Offer service functions.

Offers move PENDING -> SENT -> ACCEPTED | REJECTED. Every write is a
conditional update on the status the offer was read in, so a repeated or
concurrent response is refused instead of overwriting ``responded_at``.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ConflictError, DeliveryError, ValidationError
from core.integrations.email import MessageSender
from core.middleware.authorization import CallerContext
from core.utils.datetime import add_days, ensure_aware, isoformat, now
from core.utils.formatting import mask_email, render_template
from database.models.applications import Application, ApplicationActivityType, ApplicationStatus
from database.models.jobs import JobPosting
from database.models.offers import ContractTemplate, Offer, OfferStatus
from database.repository import get_or_404, guarded_update
from recruitment import lifecycle, offers as offer_rules

from api.services.applications import change_status, load_application, record_activity

logger = logging.getLogger(__name__)


def serialize_offer(offer: Offer, at: Optional[datetime] = None) -> dict[str, Any]:
    """Offer as the API reports it, with EXPIRED derived from ``expires_at``."""
    return {
        "id": offer.id,
        "application_id": offer.application_id,
        "title": offer.title,
        "salary": str(offer.salary),
        "currency": offer.currency,
        "status": offer_rules.effective_status(offer.status, offer.expires_at, at).value,
        "stored_status": offer.status.value,
        "contract_text": offer.contract_text,
        "signature_ref": offer.signature_ref,
        "decline_reason": offer.decline_reason,
        "issued_at": isoformat(offer.issued_at),
        "responded_at": isoformat(offer.responded_at),
        "expires_at": isoformat(offer.expires_at),
        "created_at": isoformat(offer.created_at),
        "version": offer.version,
    }


def serialize_contract_template(template: ContractTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "body": template.body,
        "created_at": isoformat(template.created_at),
    }


def _parse_salary(salary: Any) -> Decimal:
    try:
        value = Decimal(str(salary))
    except (InvalidOperation, ValueError):
        raise ValidationError("Salary must be a number", {"field": "salary"})
    if not value.is_finite() or value <= 0:
        raise ValidationError("Salary must be greater than zero", {"field": "salary"})
    return value.quantize(Decimal("0.01"))


async def _load_offer(session: AsyncSession, offer_id: int) -> Offer:
    return await get_or_404(session, Offer, offer_id, "Offer")


async def create_offer(
    session: AsyncSession,
    application_id: int,
    salary: Any,
    title: Optional[str] = None,
    currency: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Extend a PENDING offer and move the application to OFFERED.

    The application walks the forward path one step at a time, so an
    offer made straight from SHORTLISTED records the INTERVIEWING step
    too. All of it commits together with the offer.

    Args:
        session: Database session
        application_id: Application receiving the offer
        salary: Gross salary, positive
        title: Offered role title (default: the job title)
        currency: Salary currency (default from settings)
        expires_at: Optional expiry moment
        caller: Acting user

    Returns:
        Serialized offer

    Raises:
        NotFoundError: If the application does not exist
        ConflictError: If the application is not shortlisted, interviewing or
            offered, or already holds an open offer
        ValidationError: On a missing or non-positive salary
    """
    application = await load_application(session, application_id)
    if application.status not in offer_rules.OFFERABLE_APPLICATION_STATUSES:
        raise ConflictError(
            f"Cannot make an offer to a {application.status.value} application",
            {"status": application.status.value},
        )
    amount = _parse_salary(salary)
    open_offers = await session.execute(
        select(Offer).where(
            Offer.application_id == application_id,
            Offer.status.in_(offer_rules.OPEN_STATUSES),
        )
    )
    offer_rules.check_no_open_offer(application_id, open_offers.scalars().all())
    job = await session.get(JobPosting, application.job_id)

    offer_title = (title or "").strip() or (job.title if job else "")
    if not offer_title:
        raise ValidationError("Offer title is required", {"field": "title"})

    while application.status != ApplicationStatus.OFFERED:
        await change_status(
            session,
            application,
            lifecycle.next_status(application.status),
            application.status,
            caller=caller,
            details={"via": "offer"},
        )

    offer = Offer(
        application_id=application_id,
        title=offer_title,
        salary=amount,
        currency=(currency or settings.default_currency).upper(),
        status=OfferStatus.PENDING,
        expires_at=ensure_aware(expires_at),
    )
    session.add(offer)
    await session.flush()

    record_activity(
        session,
        application_id,
        ApplicationActivityType.OFFER_CREATED,
        f"Offer created: {offer_title}",
        {"offer_id": offer.id, "salary": str(amount), "currency": offer.currency},
        caller,
    )
    await session.commit()
    logger.info(
        f"Offer {offer.id} created for application {application_id}",
        extra={"application_id": application_id},
    )
    return serialize_offer(offer)


async def send_offer(
    session: AsyncSession,
    offer_id: int,
    expires_in_days: Optional[int] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Issue a pending offer to the candidate.

    ``expires_in_days`` (or the configured default) sets ``expires_at``
    relative to the issue time; without either, an expiry set at creation
    is kept.

    Raises:
        NotFoundError: If the offer does not exist
        ConflictError: Unless the offer is PENDING and not expired
    """
    offer = await _load_offer(session, offer_id)
    current = offer_rules.effective_status(offer.status, offer.expires_at)
    offer_rules.check_can_send(offer_id, current)

    if expires_in_days is not None and expires_in_days <= 0:
        raise ValidationError("expires_in_days must be positive", {"field": "expires_in_days"})

    issued_at = now()
    values: dict[str, Any] = {"status": OfferStatus.SENT, "issued_at": issued_at}
    days = expires_in_days or settings.offer_default_expiry_days
    if days:
        values["expires_at"] = add_days(issued_at, days)

    await guarded_update(session, offer, "status", OfferStatus.PENDING, values, "Offer")
    record_activity(
        session,
        offer.application_id,
        ApplicationActivityType.OFFER_SENT,
        "Offer sent",
        {"offer_id": offer.id, "expires_at": isoformat(values.get("expires_at"))},
        caller,
    )
    await session.commit()
    logger.info(f"Offer {offer_id} sent", extra={"application_id": offer.application_id})
    return serialize_offer(offer)


async def accept_offer(
    session: AsyncSession,
    offer_id: int,
    signature_ref: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Record the candidate's acceptance.

    The application must be OFFERED and moves to ACCEPTED in the same
    transaction.

    Args:
        session: Database session
        offer_id: Offer being accepted
        signature_ref: Reference to the captured signature, if any
        caller: Acting user

    Returns:
        Serialized offer

    Raises:
        NotFoundError: If the offer does not exist
        ConflictError: If the offer is not open (already answered or expired)
            or its application is no longer OFFERED
    """
    offer = await _load_offer(session, offer_id)
    current = offer_rules.effective_status(offer.status, offer.expires_at)
    offer_rules.check_can_respond(offer_id, current, "accept")

    application = await load_application(session, offer.application_id)
    offer_rules.check_can_accept_for(application.id, application.status)

    values: dict[str, Any] = {"status": OfferStatus.ACCEPTED, "responded_at": now()}
    if signature_ref:
        values["signature_ref"] = signature_ref
    await guarded_update(session, offer, "status", offer.status, values, "Offer")

    await change_status(
        session,
        application,
        ApplicationStatus.ACCEPTED,
        ApplicationStatus.OFFERED,
        caller=caller,
        details={"offer_id": offer.id},
    )
    record_activity(
        session,
        offer.application_id,
        ApplicationActivityType.OFFER_ACCEPTED,
        "Offer accepted",
        {"offer_id": offer.id, "signed": bool(signature_ref)},
        caller,
    )
    await session.commit()
    logger.info(f"Offer {offer_id} accepted", extra={"application_id": offer.application_id})
    return serialize_offer(offer)


async def decline_offer(
    session: AsyncSession,
    offer_id: int,
    reason: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Record the candidate's refusal.

    The application keeps its status; HR decides whether to re-offer or
    reject it.

    Raises:
        NotFoundError: If the offer does not exist
        ConflictError: If the offer is not open (already answered or expired)
    """
    offer = await _load_offer(session, offer_id)
    current = offer_rules.effective_status(offer.status, offer.expires_at)
    offer_rules.check_can_respond(offer_id, current, "decline")

    values = {
        "status": OfferStatus.REJECTED,
        "responded_at": now(),
        "decline_reason": (reason or "").strip() or None,
    }
    await guarded_update(session, offer, "status", offer.status, values, "Offer")
    record_activity(
        session,
        offer.application_id,
        ApplicationActivityType.OFFER_DECLINED,
        "Offer declined",
        {"offer_id": offer.id, "reason": values["decline_reason"]},
        caller,
    )
    await session.commit()
    logger.info(f"Offer {offer_id} declined", extra={"application_id": offer.application_id})
    return serialize_offer(offer)


async def render_contract(
    session: AsyncSession, offer: Offer, template_id: Optional[int] = None
) -> str:
    """Offer letter text for an offer, from a stored or the default template."""
    if template_id is not None:
        template = await get_or_404(session, ContractTemplate, template_id, "Contract template")
        body = template.body
    else:
        body = offer_rules.DEFAULT_CONTRACT_TEMPLATE

    application = await load_application(session, offer.application_id)
    job = await session.get(JobPosting, application.job_id)
    return render_template(body, offer_rules.contract_variables(application, job, offer))


async def generate_contract(
    session: AsyncSession, offer_id: int, template_id: Optional[int] = None
) -> dict[str, Any]:
    """
    Render and store the offer letter.

    Raises:
        NotFoundError: If the offer or template does not exist
        ConflictError: If the candidate already responded
    """
    offer = await _load_offer(session, offer_id)
    offer_rules.check_can_edit_contract(offer_id, offer.status)
    offer.contract_text = await render_contract(session, offer, template_id)
    await session.commit()
    return serialize_offer(offer)


async def set_contract_text(session: AsyncSession, offer_id: int, text: str) -> dict[str, Any]:
    """Replace the offer letter with hand-edited text."""
    offer = await _load_offer(session, offer_id)
    offer_rules.check_can_edit_contract(offer_id, offer.status)
    if not text or not text.strip():
        raise ValidationError("Contract text is required", {"field": "text"})
    offer.contract_text = text
    await session.commit()
    return serialize_offer(offer)


async def get_offer(session: AsyncSession, offer_id: int) -> dict[str, Any]:
    return serialize_offer(await _load_offer(session, offer_id))


async def list_offers(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    await load_application(session, application_id)
    result = await session.execute(
        select(Offer)
        .where(Offer.application_id == application_id)
        .order_by(Offer.created_at, Offer.id)
    )
    return [serialize_offer(o) for o in result.scalars().all()]


# ==================== Contract templates ===================== #

async def create_contract_template(session: AsyncSession, name: str, body: str) -> dict[str, Any]:
    if not name or not name.strip() or not body or not body.strip():
        raise ValidationError("Template name and body are required")
    template = ContractTemplate(name=name.strip(), body=body)
    session.add(template)
    await session.commit()
    return serialize_contract_template(template)


async def list_contract_templates(session: AsyncSession) -> list[dict[str, Any]]:
    result = await session.execute(select(ContractTemplate).order_by(ContractTemplate.name))
    return [serialize_contract_template(t) for t in result.scalars().all()]


# ==================== Delivery ===================== #

async def deliver_offer_letter(
    session_factory: Callable[[], AsyncSession],
    sender: MessageSender,
    offer_id: int,
) -> bool:
    """
    Email the offer letter after the send has committed.

    Runs as a background task: failures are logged and reported through
    the return value, never raised.
    """
    try:
        async with session_factory() as session:
            offer = await _load_offer(session, offer_id)
            application = await session.get(Application, offer.application_id)
            text = offer.contract_text or await render_contract(session, offer)
            await sender.send_message(
                application.email,
                f"Offer of employment: {offer.title}",
                text,
            )
    except DeliveryError as e:
        logger.warning(f"Offer {offer_id} letter not delivered: {e}")
        return False
    except Exception:
        logger.error(f"Offer {offer_id} letter delivery crashed", exc_info=True)
        return False

    logger.info(f"Offer {offer_id} letter sent to {mask_email(application.email)}")
    return True
