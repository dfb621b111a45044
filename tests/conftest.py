"""Shared fixtures and utilities for tests."""

import asyncio
import os
from datetime import date, timedelta
from typing import Optional, Sequence

import pytest

# Settings are read at import time; set the test environment first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-recruitment.db")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("COMPANY_NAME", "Kechita Capital")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from core.exceptions import DeliveryError  # noqa: E402
from core.integrations.email import Attachment, DeliveryReceipt, get_message_sender  # noqa: E402
from database.engine import create_engine_for_url, get_db, get_session_factory, init_db  # noqa: E402
from core.middleware.authorization import resolve_caller  # noqa: E402
from api.services import applications as application_service  # noqa: E402
from api.services import jobs as job_service  # noqa: E402


class FakeSender:
    """In-memory message sender recording every delivery attempt."""

    def __init__(self, fail_for: Sequence[str] = ()):
        self.fail_for = {address.lower() for address in fail_for}
        self.sent: list[dict] = []
        self.failed: list[str] = []

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> DeliveryReceipt:
        if to.lower() in self.fail_for:
            self.failed.append(to)
            raise DeliveryError(f"mailbox unavailable: {to}")
        self.sent.append({"to": to, "subject": subject, "body": body})
        return DeliveryReceipt(message_id=f"<{len(self.sent)}@test>", recipient=to)


LOAN_RULES = {
    "must_have": ["loan", "microfinance"],
    "preferred": ["credit"],
    "shortlist_threshold": 35,
    "reject_threshold": 15,
}

STAFF_HEADERS = {
    "hr": {"x-user-id": "hr-1", "x-user-role": "hr"},
    "manager": {"x-user-id": "mgr-1", "x-user-role": "manager"},
    "staff": {"x-user-id": "staff-1", "x-user-role": "staff"},
}


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'recruitment.db'}"


@pytest.fixture
async def engine(database_url):
    engine = create_engine_for_url(database_url, poolclass=NullPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def api_factory(database_url, sender):
    """Sync engine setup for TestClient-based tests, which run their own loop."""
    engine = create_engine_for_url(database_url, poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(api_factory, sender):
    """TestClient over the real app with a per-test database and fake sender."""
    from api.main import app

    async def _get_db():
        async with api_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: api_factory
    app.dependency_overrides[get_message_sender] = lambda: sender

    # Not entering the context manager skips lifespan (and the default database)
    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()


@pytest.fixture
def hr_headers():
    return STAFF_HEADERS["hr"]


@pytest.fixture
def manager_headers():
    return STAFF_HEADERS["manager"]


@pytest.fixture
def staff_headers():
    return STAFF_HEADERS["staff"]


@pytest.fixture
def future_deadline():
    return date.today() + timedelta(days=30)


@pytest.fixture
def make_sender():
    """Factory for senders that fail for chosen recipients."""
    return FakeSender


@pytest.fixture
def hr_caller():
    return resolve_caller("hr-1", "hr")


@pytest.fixture
def make_job(session):
    """Create a job through the service layer; rules=None leaves it on defaults."""

    async def _make(title="Loan Officer", description="Originate and manage microloans",
                    rules=LOAN_RULES, **kwargs):
        job = await job_service.create_job(session, title, description, **kwargs)
        if rules is not None:
            await job_service.upsert_rule_set(session, job["id"], **rules)
        return job

    return _make


@pytest.fixture
def make_application(session):
    """Submit an application; the default profile shortlists against LOAN_RULES."""

    async def _make(job_id, email="jane@example.com", resume_text="loan microfinance credit",
                    **kwargs):
        kwargs.setdefault("first_name", "Jane")
        kwargs.setdefault("last_name", "Doe")
        result = await application_service.apply(
            session, job_id, email=email, resume_text=resume_text, **kwargs
        )
        return result["application"]

    return _make


@pytest.fixture
def loan_rules():
    return dict(LOAN_RULES)
