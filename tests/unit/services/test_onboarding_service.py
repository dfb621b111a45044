"""
Tests for onboarding task templates and checklists.
"""

import pytest

from api.services import applications as application_service
from api.services import offers as offer_service
from api.services import onboarding as onboarding_service
from core.exceptions import ConflictError, NotFoundError, PreconditionFailedError


@pytest.fixture
async def hired(session, make_job, make_application):
    """An application whose offer was accepted, with default tasks seeded."""
    await onboarding_service.seed_default_tasks(session)
    job = await make_job()
    application = await make_application(job["id"])
    offer = await offer_service.create_offer(session, application["id"], 70000)
    await offer_service.accept_offer(session, offer["id"])
    return application


class TestTasks:
    """Test task templates."""

    async def test_seed_is_idempotent(self, session):
        first = await onboarding_service.seed_default_tasks(session)
        second = await onboarding_service.seed_default_tasks(session)

        assert len(first) == 5
        assert [t["code"] for t in second] == [t["code"] for t in first]

    async def test_create_task_appends(self, session):
        await onboarding_service.seed_default_tasks(session)
        task = await onboarding_service.create_task(session, "it_kit", "Issue laptop")

        assert task["sort_order"] == 6

    async def test_duplicate_code(self, session):
        await onboarding_service.seed_default_tasks(session)
        with pytest.raises(ConflictError):
            await onboarding_service.create_task(session, "policy_ack", "Again")


class TestChecklist:
    """Test checklist materialization and completion."""

    async def test_init_twice_keeps_one_item_per_task(self, session, hired, hr_caller):
        first = await onboarding_service.init_checklist(session, hired["id"], hr_caller)
        second = await onboarding_service.init_checklist(session, hired["id"], hr_caller)

        assert len(first) == 5
        assert len(second) == 5
        assert [i["id"] for i in second] == [i["id"] for i in first]
        assert [i["code"] for i in first][0] == "acct_creation"

        activity = await application_service.list_activity(session, hired["id"])
        initialized = [a for a in activity if a["activity_type"] == "onboarding_initialized"]
        assert len(initialized) == 1

    async def test_requires_accepted_offer(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"])
        await offer_service.create_offer(session, application["id"], 70000)

        with pytest.raises(PreconditionFailedError):
            await onboarding_service.init_checklist(session, application["id"])

    async def test_unknown_application(self, session):
        with pytest.raises(NotFoundError):
            await onboarding_service.init_checklist(session, 999)

    async def test_complete_is_one_way(self, session, hired):
        items = await onboarding_service.init_checklist(session, hired["id"])

        done = await onboarding_service.complete_item(session, items[0]["id"], "doc-42")
        assert done["completed"] is True
        assert done["completed_at"] is not None
        assert done["evidence_ref"] == "doc-42"

        with pytest.raises(ConflictError):
            await onboarding_service.complete_item(session, items[0]["id"])

    async def test_new_task_added_on_reinit(self, session, hired):
        await onboarding_service.init_checklist(session, hired["id"])
        await onboarding_service.create_task(session, "it_kit", "Issue laptop")

        items = await onboarding_service.init_checklist(session, hired["id"])
        assert len(items) == 6
        assert items[-1]["code"] == "it_kit"
