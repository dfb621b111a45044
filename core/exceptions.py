"""
Domain error taxonomy for the recruitment engine.

Each error carries the HTTP status and machine-readable code the API layer
renders. Raising one of these inside a service aborts the unit of work
before (or instead of) any write.
"""

from typing import Any, Optional


class RecruitmentError(Exception):
    """Base class for all recruitment domain errors."""

    status_code: int = 500
    error_code: str = "RECRUITMENT_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(RecruitmentError):
    """Missing or malformed input."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthorizationError(RecruitmentError):
    """Caller lacks the capability for the requested action."""

    status_code = 403
    error_code = "PERMISSION_DENIED"


class NotFoundError(RecruitmentError):
    """A referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found"
        if entity_id is not None:
            message = f"{entity} {entity_id} not found"
        super().__init__(message, {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(RecruitmentError):
    """Transition from an ineligible state or a stale expected state."""

    status_code = 409
    error_code = "CONFLICT"


class PreconditionFailedError(RecruitmentError):
    """A required prior step has not happened yet."""

    status_code = 412
    error_code = "PRECONDITION_FAILED"


class DeliveryError(Exception):
    """Outbound message could not be delivered."""
