"""Job namespace: queue names, job types and the records that flow through the queue"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional


class QueueName(str, Enum):
    AUTOMATION = "automation"


class JobType(str, Enum):
    SEND_BOOKING_CONFIRMATION = "send_booking_confirmation"
    SEND_BOOKING_REMINDER = "send_booking_reminder"
    CREATE_FORM_SUBMISSION = "create_form_submission"
    SEND_FORM_REMINDER = "send_form_reminder"
    CHECK_FORM_OVERDUE = "check_form_overdue"


class UnknownJobTypeError(Exception):
    def __init__(self, job_type: str):
        super().__init__(f"No processor registered for job type '{job_type}'")
        self.job_type = job_type


def _value(name) -> str:
    return name.value if isinstance(name, Enum) else str(name)


def build_job_identity(workspace_id: str, job_type, key_name: str, key_value: str) -> str:
    """Deterministic identity of a logical job, e.g. the one reminder for a booking"""
    return f"{workspace_id}:{_value(job_type)}:{key_name}:{key_value}"


@dataclass
class AutomationJob:
    queue_name: str
    job_type: str
    data: dict[str, Any]
    delay: Optional[timedelta] = None
    identity: Optional[str] = None

    def __post_init__(self):
        self.queue_name = _value(self.queue_name)
        self.job_type = _value(self.job_type)


@dataclass
class JobHandle:
    """Result of a successful enqueue. duplicate=True means the identity already existed."""

    job_id: str
    queue_name: str
    job_type: str
    scheduled_for: Optional[datetime] = None
    duplicate: bool = False


@dataclass
class QueuedJob:
    """A job still waiting in the delayed set"""

    job_id: str
    queue_name: str
    job_type: str
    data: dict[str, Any] = field(default_factory=dict)
    eligible_at: Optional[datetime] = None


@dataclass
class JobContext:
    """What a processor receives"""

    job_id: str
    queue_name: str
    job_type: str
    data: dict[str, Any]
    attempt: int = 1
