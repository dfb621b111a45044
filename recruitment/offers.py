"""
Offer lifecycle rules.

Persisted statuses are PENDING, SENT, ACCEPTED and REJECTED. EXPIRED is
derived when the offer is read: an offer still open (PENDING or SENT)
whose ``expires_at`` has passed reports EXPIRED and can no longer be
sent, accepted or declined. Nothing ever writes EXPIRED.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from core.config import settings
from core.exceptions import ConflictError
from core.utils.datetime import is_past
from core.utils.formatting import format_currency
from database.models.applications import ApplicationStatus
from database.models.offers import OfferStatus

OPEN_STATUSES = frozenset({OfferStatus.PENDING, OfferStatus.SENT})

# Application statuses from which an offer may be extended
OFFERABLE_APPLICATION_STATUSES = frozenset(
    {
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.INTERVIEWING,
        ApplicationStatus.OFFERED,
    }
)

DEFAULT_CONTRACT_TEMPLATE = (
    "Offer Letter\n\n"
    "Dear {{firstName}} {{lastName}},\n"
    "We are pleased to offer you the role of {{jobTitle}} at branch {{branch}}, "
    "region {{region}}.\n"
    "Gross Salary: {{salary}} {{currency}}.\n\n"
    "{{company}}"
)


def effective_status(
    status: OfferStatus, expires_at: Optional[datetime], at: Optional[datetime] = None
) -> OfferStatus:
    """
    Status an offer reports at read time.

    Args:
        status: Persisted status
        expires_at: Expiry moment, if any
        at: Moment to evaluate at (default: now)

    Returns:
        EXPIRED for a lapsed open offer, otherwise the persisted status
    """
    if status in OPEN_STATUSES and expires_at is not None and is_past(expires_at, at):
        return OfferStatus.EXPIRED
    return status


def _refuse(offer_id: Any, action: str, current: OfferStatus) -> ConflictError:
    return ConflictError(
        f"Cannot {action} offer {offer_id} in status {current.value}",
        {"status": current.value, "action": action},
    )


def check_can_send(offer_id: Any, current: OfferStatus) -> None:
    """
    Only a pending offer can be sent.

    Raises:
        ConflictError: For any other effective status
    """
    if current != OfferStatus.PENDING:
        raise _refuse(offer_id, "send", current)


def check_can_respond(offer_id: Any, current: OfferStatus, action: str) -> None:
    """
    Accept and decline are legal from PENDING or SENT only.

    Repeating a response that already happened is a conflict, not a no-op.

    Raises:
        ConflictError: For any other effective status
    """
    if current not in OPEN_STATUSES:
        raise _refuse(offer_id, action, current)


def check_can_edit_contract(offer_id: Any, current: OfferStatus) -> None:
    """
    Contract text is frozen once the candidate has responded.

    Raises:
        ConflictError: If the offer was accepted or declined
    """
    if current in (OfferStatus.ACCEPTED, OfferStatus.REJECTED):
        raise _refuse(offer_id, "edit contract of", current)


def contract_variables(application, job, offer) -> dict[str, Any]:
    """
    Placeholder values for an offer letter.

    Args:
        application: Application the offer belongs to
        job: Job posting applied to (may be None)
        offer: The offer

    Returns:
        Mapping of placeholder name to value
    """
    salary = offer.salary
    if isinstance(salary, Decimal):
        salary = f"{salary:,.2f}"
    return {
        "firstName": application.first_name,
        "lastName": application.last_name,
        "applicantEmail": application.email,
        "jobTitle": offer.title,
        "branch": getattr(job, "branch", None),
        "region": getattr(job, "region", None),
        "salary": salary,
        "currency": offer.currency,
        "compensation": format_currency(offer.salary, offer.currency),
        "company": settings.company_name,
    }


def check_no_open_offer(application_id: Any, offers, at: Optional[datetime] = None) -> None:
    """
    An application holds at most one open offer at a time.

    A lapsed offer no longer counts as open.

    Raises:
        ConflictError: If one of ``offers`` is PENDING or SENT and not expired
    """
    for offer in offers:
        if effective_status(offer.status, offer.expires_at, at) in OPEN_STATUSES:
            raise ConflictError(
                f"Application {application_id} already has open offer {offer.id}",
                {"offer_id": offer.id, "status": offer.status.value},
            )


def check_can_accept_for(application_id: Any, application_status: ApplicationStatus) -> None:
    """
    Only an OFFERED application can take up an offer.

    Raises:
        ConflictError: For a rejected, already accepted or earlier application
    """
    if application_status != ApplicationStatus.OFFERED:
        raise ConflictError(
            f"Application {application_id} is {application_status.value}; "
            "no offer can be accepted",
            {"status": application_status.value},
        )
