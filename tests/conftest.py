import itertools
from datetime import datetime, timedelta
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from servicehub import models  # noqa: F401 - register models with Base
from servicehub.automation import build_automation_context
from servicehub.config import AutomationSettings
from servicehub.database import Base
from servicehub.models import (
    BookingType,
    Channel,
    Form,
    Integration,
    InventoryItem,
    User,
    Workspace,
    WorkspaceRole,
    WorkspaceUser,
)
from servicehub.notifications.credentials import encrypt_config
from servicehub.notifications.providers import NotificationProvider
from servicehub.queue import JobHandle, QueueBackend, QueuedJob, QueueUnavailableError
from servicehub.shared.time import utcnow


class InMemoryQueueBackend(QueueBackend):
    """
    Queue backend fake. Mirrors the ARQ behaviour the JobQueue relies on:
    an existing id (waiting or finished) is a duplicate, and removal only
    affects jobs that haven't run.
    """

    def __init__(self):
        self.jobs: dict[str, QueuedJob] = {}
        self.finished: dict[str, Any] = {}
        self.failed: dict[str, Exception] = {}
        self.dispatchers: dict[str, Any] = {}
        self.available = True
        self.closed = False
        self._ids = itertools.count(1)

    def _check(self):
        if not self.available:
            raise QueueUnavailableError("broker down")

    async def enqueue(self, job) -> JobHandle:
        self._check()
        job_id = job.identity or f"job-{next(self._ids)}"
        if job_id in self.jobs or job_id in self.finished or job_id in self.failed:
            return JobHandle(job_id=job_id, queue_name=job.queue_name, job_type=job.job_type, duplicate=True)

        eligible_at = utcnow() + (job.delay or timedelta(0))
        self.jobs[job_id] = QueuedJob(
            job_id=job_id,
            queue_name=job.queue_name,
            job_type=job.job_type,
            data=dict(job.data),
            eligible_at=eligible_at,
        )
        return JobHandle(job_id=job_id, queue_name=job.queue_name, job_type=job.job_type, scheduled_for=eligible_at)

    async def list_delayed(self, queue_name: str) -> list[QueuedJob]:
        self._check()
        now = utcnow()
        return [j for j in self.jobs.values() if j.queue_name == queue_name and j.eligible_at > now]

    async def remove(self, queue_name: str, job_id: str) -> bool:
        self._check()
        return self.jobs.pop(job_id, None) is not None

    async def job_counts(self, queue_name: str) -> dict[str, int]:
        self._check()
        now = utcnow()
        queued = [j for j in self.jobs.values() if j.queue_name == queue_name]
        delayed = sum(1 for j in queued if j.eligible_at > now)
        return {
            "waiting": len(queued) - delayed,
            "delayed": delayed,
            "completed": len(self.finished),
            "failed": len(self.failed),
        }

    async def start_consumer(self, queue_name: str, dispatch, concurrency: int) -> None:
        self._check()
        self.dispatchers[queue_name] = dispatch

    async def close(self, grace_period: float = 10.0) -> None:
        self.closed = True

    # Test helpers

    def find(self, job_type=None, **data) -> list[QueuedJob]:
        job_type = getattr(job_type, "value", job_type)
        return [
            job
            for job in self.jobs.values()
            if (job_type is None or job.job_type == job_type)
            and all(job.data.get(key) == value for key, value in data.items())
        ]

    async def run_job(self, job_id: str) -> Any:
        job = self.jobs.pop(job_id)
        dispatch = self.dispatchers[job.queue_name]
        try:
            result = await dispatch(job.job_type, job.data, {"job_id": job_id, "job_try": 1})
        except Exception as e:
            self.failed[job_id] = e
            raise
        self.finished[job_id] = result
        return result

    def due(self, until: Optional[datetime] = None) -> list[QueuedJob]:
        until = until or utcnow()
        return sorted((j for j in self.jobs.values() if j.eligible_at <= until), key=lambda j: j.eligible_at)


class RecordingProvider(NotificationProvider):
    """Records sends; queue errors in `failures` to make the next attempts fail"""

    name = "recording"

    def __init__(self, channel: str):
        self.channel = channel
        self.sent: list[dict[str, Any]] = []
        self.failures: list[Exception] = []
        self.attempts = 0

    async def send(self, recipient, subject, content, config) -> Optional[str]:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append({"recipient": recipient, "subject": subject, "content": content, "config": config})
        return f"{self.channel.lower()}-{len(self.sent)}"

    def to(self, recipient: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["recipient"] == recipient]


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'servicehub.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def workspace(db):
    workspace = Workspace(name="Sparkle Cleaning", slug="sparkle")
    owner = User(email="owner@sparkle.test", name="Olivia Owner")
    db.add_all([workspace, owner])
    db.flush()
    db.add(WorkspaceUser(workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER.value))
    db.add_all(
        [
            Integration(
                workspace_id=workspace.id,
                type=Channel.EMAIL.value,
                provider="recording",
                config=encrypt_config({"api_key": "re_test", "from_email": "hello@sparkle.test"}),
            ),
            Integration(
                workspace_id=workspace.id,
                type=Channel.SMS.value,
                provider="recording",
                config=encrypt_config({"account_sid": "AC123", "auth_token": "secret", "phone_number": "+15550000000"}),
            ),
        ]
    )
    db.commit()
    return workspace


@pytest.fixture
def booking_type(db, workspace):
    booking_type = BookingType(workspace_id=workspace.id, name="Deep Clean", duration_minutes=120)
    db.add(booking_type)
    db.flush()
    db.add(Form(workspace_id=workspace.id, booking_type_id=booking_type.id, name="Home Access Checklist"))
    db.commit()
    return booking_type


@pytest.fixture
def inventory_item(db, workspace):
    item = InventoryItem(workspace_id=workspace.id, name="Microfiber Cloths", quantity=5, threshold=5)
    db.add(item)
    db.commit()
    return item


@pytest.fixture
def settings():
    return AutomationSettings(notification_backoff_seconds=0, shutdown_grace_seconds=1)


@pytest.fixture
def backend():
    return InMemoryQueueBackend()


@pytest.fixture
def email_provider():
    return RecordingProvider(Channel.EMAIL.value)


@pytest.fixture
def sms_provider():
    return RecordingProvider(Channel.SMS.value)


@pytest_asyncio.fixture
async def automation(session_factory, settings, backend, email_provider, sms_provider):
    context = build_automation_context(
        session_factory, settings, backend=backend, providers=[email_provider, sms_provider]
    )
    await context.start(consume=True)
    yield context
    await context.close()


@pytest.fixture
def run_due(automation, backend):
    async def _run(until: Optional[datetime] = None) -> int:
        """Run every job eligible by `until`, including follow-up jobs they schedule. Returns jobs run."""
        ran = 0
        await automation.bus.drain()
        while True:
            due = backend.due(until)
            if not due:
                return ran
            for job in due:
                await backend.run_job(job.job_id)
                ran += 1
            await automation.bus.drain()

    return _run

