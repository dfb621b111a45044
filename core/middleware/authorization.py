"""
Capability checks for recruitment actions.

Authentication happens upstream: the portal gateway verifies the session
and forwards the caller as ``X-User-Id`` / ``X-User-Role`` headers. This
module maps the role onto permissions and exposes ``require_permission``
as a FastAPI dependency that runs before any transition. Services receive
the resulting ``CallerContext`` and never re-derive roles themselves.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from fastapi import Request

from core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"


class StaffRole(str, Enum):
    """Portal roles allowed to touch recruitment."""

    SUPERADMIN = "superadmin"
    HR = "hr"
    MANAGER = "manager"
    STAFF = "staff"


class Permission(str, Enum):
    """Recruitment permissions."""

    # Jobs & rules
    JOB_READ = "job:read"
    JOB_MANAGE = "job:manage"
    RULES_MANAGE = "rules:manage"
    SCREENING_MANAGE = "screening:manage"

    # Applications
    APPLICATION_READ = "application:read"
    APPLICATION_ADVANCE = "application:advance"
    APPLICATION_REJECT = "application:reject"
    APPLICATION_MOVE = "application:move"
    APPLICATION_NOTE = "application:note"

    # Pipelines
    PIPELINE_READ = "pipeline:read"
    PIPELINE_MANAGE = "pipeline:manage"

    # Interviews
    INTERVIEW_SCHEDULE = "interview:schedule"
    INTERVIEW_UPDATE = "interview:update"
    INTERVIEW_EVALUATE = "interview:evaluate"

    # Offers
    OFFER_READ = "offer:read"
    OFFER_CREATE = "offer:create"
    OFFER_SEND = "offer:send"
    OFFER_RESPOND = "offer:respond"
    OFFER_CONTRACT = "offer:contract"

    # Onboarding
    ONBOARDING_READ = "onboarding:read"
    ONBOARDING_MANAGE = "onboarding:manage"
    ONBOARDING_COMPLETE = "onboarding:complete"

    # Communications
    REGRET_SEND = "regret:send"
    TEMPLATE_MANAGE = "template:manage"


_READ_ONLY = {
    Permission.JOB_READ,
    Permission.APPLICATION_READ,
    Permission.PIPELINE_READ,
    Permission.OFFER_READ,
    Permission.ONBOARDING_READ,
}

ROLE_PERMISSIONS: dict[StaffRole, frozenset[Permission]] = {
    StaffRole.SUPERADMIN: frozenset(Permission),
    StaffRole.HR: frozenset(Permission),
    StaffRole.MANAGER: frozenset(
        _READ_ONLY
        | {
            Permission.APPLICATION_ADVANCE,
            Permission.APPLICATION_REJECT,
            Permission.APPLICATION_MOVE,
            Permission.APPLICATION_NOTE,
            Permission.INTERVIEW_SCHEDULE,
            Permission.INTERVIEW_UPDATE,
            Permission.INTERVIEW_EVALUATE,
            Permission.OFFER_CREATE,
            Permission.OFFER_SEND,
            Permission.OFFER_RESPOND,
            Permission.OFFER_CONTRACT,
            Permission.ONBOARDING_MANAGE,
            Permission.ONBOARDING_COMPLETE,
        }
    ),
    # New hires tick off their own checklist
    StaffRole.STAFF: frozenset(
        {Permission.JOB_READ, Permission.ONBOARDING_READ, Permission.ONBOARDING_COMPLETE}
    ),
}


@dataclass(frozen=True)
class CallerContext:
    """Pre-authorized caller handed to the services."""

    user_id: str
    role: StaffRole
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions


def get_role_permissions(role: StaffRole) -> frozenset[Permission]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def resolve_caller(user_id: Optional[str], role: Optional[str]) -> CallerContext:
    """
    Build a caller context from gateway-supplied identity.

    Raises:
        AuthorizationError: If the identity is missing or the role unknown
    """
    if not user_id or not role:
        raise AuthorizationError("Caller identity missing")
    try:
        staff_role = StaffRole(role.strip().lower())
    except ValueError:
        raise AuthorizationError(f"Unknown role: {role}")
    return CallerContext(
        user_id=user_id.strip(),
        role=staff_role,
        permissions=get_role_permissions(staff_role),
    )


def check_permission(caller: CallerContext, *required: Permission) -> None:
    """
    Ensure the caller holds every required permission.

    Raises:
        AuthorizationError: On the first missing permission
    """
    missing = [permission for permission in required if not caller.has(permission)]
    if missing:
        logger.warning(
            f"User {caller.user_id} with role {caller.role.value} denied: "
            f"missing {', '.join(p.value for p in missing)}"
        )
        raise AuthorizationError(
            f"Role {caller.role.value} is not allowed to perform this action",
            {"required": [p.value for p in missing]},
        )


def require_permission(*required_permissions: Permission) -> Callable:
    """
    Dependency to require specific permissions.

    Args:
        required_permissions: Permissions the caller must hold

    Returns:
        FastAPI dependency resolving to the caller's ``CallerContext``
    """

    async def dependency(request: Request) -> CallerContext:
        caller = resolve_caller(
            request.headers.get(USER_ID_HEADER),
            request.headers.get(USER_ROLE_HEADER),
        )
        check_permission(caller, *required_permissions)
        request.state.caller = caller
        return caller

    return dependency
