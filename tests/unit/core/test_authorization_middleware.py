"""
Tests for role to permission mapping and the permission dependency.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from core.exceptions import AuthorizationError
from core.middleware.authorization import (
    CallerContext,
    Permission,
    StaffRole,
    check_permission,
    get_role_permissions,
    require_permission,
    resolve_caller,
)
from core.middleware.error_handling import setup_error_handlers


class TestRolePermissions:
    """Test the role matrix."""

    @pytest.mark.parametrize("role", [StaffRole.SUPERADMIN, StaffRole.HR])
    def test_full_access_roles(self, role):
        assert get_role_permissions(role) == frozenset(Permission)

    @pytest.mark.parametrize("permission,allowed", [
        (Permission.APPLICATION_ADVANCE, True),
        (Permission.OFFER_CREATE, True),
        (Permission.ONBOARDING_COMPLETE, True),
        (Permission.JOB_MANAGE, False),
        (Permission.RULES_MANAGE, False),
        (Permission.REGRET_SEND, False),
    ])
    def test_manager(self, permission, allowed):
        assert (permission in get_role_permissions(StaffRole.MANAGER)) is allowed

    def test_staff_limited_to_own_onboarding(self):
        assert get_role_permissions(StaffRole.STAFF) == {
            Permission.JOB_READ,
            Permission.ONBOARDING_READ,
            Permission.ONBOARDING_COMPLETE,
        }


class TestResolveCaller:
    """Test caller resolution from gateway headers."""

    def test_resolves(self):
        caller = resolve_caller(" hr-7 ", "HR")

        assert caller.user_id == "hr-7"
        assert caller.role == StaffRole.HR
        assert caller.has(Permission.OFFER_SEND)

    @pytest.mark.parametrize("user_id,role", [(None, "hr"), ("u-1", None), ("", "hr"), ("u-1", "intern")])
    def test_rejects(self, user_id, role):
        with pytest.raises(AuthorizationError):
            resolve_caller(user_id, role)

    def test_check_permission_names_missing(self):
        caller = CallerContext("s-1", StaffRole.STAFF, get_role_permissions(StaffRole.STAFF))

        with pytest.raises(AuthorizationError) as exc_info:
            check_permission(caller, Permission.JOB_READ, Permission.OFFER_CREATE)
        assert exc_info.value.details == {"required": ["offer:create"]}


class TestRequirePermission:
    """Test the FastAPI dependency."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        setup_error_handlers(app)

        @app.post("/offers")
        async def create(caller: CallerContext = Depends(require_permission(Permission.OFFER_CREATE))):
            return {"user": caller.user_id, "role": caller.role.value}

        return TestClient(app)

    def test_allowed(self, client):
        response = client.post("/offers", headers={"x-user-id": "m-1", "x-user-role": "manager"})

        assert response.status_code == 200
        assert response.json() == {"user": "m-1", "role": "manager"}

    def test_denied(self, client):
        response = client.post("/offers", headers={"x-user-id": "s-1", "x-user-role": "staff"})

        assert response.status_code == 403
        assert response.json()["error"]["details"] == {"required": ["offer:create"]}

    def test_missing_headers(self, client):
        assert client.post("/offers").status_code == 403
