"""
Onboarding checklist rules.

A checklist is only materialized for an application whose offer has been
accepted, and items move one way from incomplete to complete.
"""

from typing import Any, Iterable

from core.exceptions import ConflictError, PreconditionFailedError
from database.models.offers import OfferStatus

# code, label, description
DEFAULT_TASKS: tuple[tuple[str, str, str], ...] = (
    ("acct_creation", "Create staff account", "Provision the new hire's portal login."),
    ("role_assignment", "Assign role & branch", "Set the staff role, branch and region."),
    ("docs_submission", "Submit required documents", "Collect ID, certificates and bank details."),
    ("policy_ack", "Acknowledge company policies", "Read and sign the staff handbook."),
    ("probation_setup", "Set probation objectives", "Agree probation goals with the line manager."),
)


def check_can_init(application_id: Any, offer_statuses: Iterable[OfferStatus]) -> None:
    """
    Require an accepted offer before onboarding starts.

    Raises:
        PreconditionFailedError: If none of the offers was accepted
    """
    if OfferStatus.ACCEPTED not in set(offer_statuses):
        raise PreconditionFailedError(
            f"Application {application_id} has no accepted offer",
            {"application_id": application_id},
        )


def check_can_complete(item_id: Any, completed: bool) -> None:
    """
    Completion cannot be repeated or undone.

    Raises:
        ConflictError: If the item is already complete
    """
    if completed:
        raise ConflictError(
            f"Onboarding item {item_id} is already complete",
            {"item_id": item_id},
        )
