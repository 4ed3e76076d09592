"""
Automation Scheduler
Business-level helpers that turn domain facts into queued automation jobs.
Every job carries a deterministic identity so duplicate triggers collapse into one job.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from ..config import AutomationSettings
from ..shared.time import to_naive_utc, utcnow
from .job_queue import JobQueue
from .jobs import JobHandle, JobType, QueueName, build_job_identity

logger = logging.getLogger(__name__)


class AutomationScheduler:
    def __init__(self, queue: JobQueue, settings: Optional[AutomationSettings] = None):
        self.queue = queue
        self.settings = settings or AutomationSettings()

    async def _add(
        self,
        job_type: JobType,
        data: dict[str, Any],
        key_name: str,
        delay: Optional[timedelta] = None,
        key_value: Optional[str] = None,
    ) -> Optional[JobHandle]:
        key_value = data[key_name] if key_value is None else key_value
        identity = build_job_identity(data["workspace_id"], job_type, key_name, key_value)
        return await self.queue.add_job(QueueName.AUTOMATION, job_type, data, delay=delay, job_identity=identity)

    async def schedule_booking_confirmation(self, data: dict[str, Any]) -> Optional[JobHandle]:
        return await self._add(JobType.SEND_BOOKING_CONFIRMATION, data, "booking_id")

    async def schedule_booking_reminder(
        self,
        data: dict[str, Any],
        scheduled_at: datetime,
        reminder_hours_before: Optional[int] = None,
    ) -> Optional[JobHandle]:
        """Schedule the reminder for scheduled_at - hours. Nothing is scheduled if that moment has passed."""
        hours = self.settings.reminder_hours_before if reminder_hours_before is None else reminder_hours_before
        reminder_at = to_naive_utc(scheduled_at) - timedelta(hours=hours)
        delay = reminder_at - utcnow()

        if delay <= timedelta(0):
            logger.debug(f"Reminder time already passed for booking {data.get('booking_id')} - not scheduled")
            return None

        return await self._add(
            JobType.SEND_BOOKING_REMINDER,
            {**data, "reminder_hours_before": hours},
            "booking_id",
            delay=delay,
            # A reminder that already ran keeps its id for a while; a new time needs a new id
            key_value=f"{data['booking_id']}:{reminder_at.isoformat(timespec='seconds')}",
        )

    async def schedule_form_submission_creation(self, data: dict[str, Any]) -> Optional[JobHandle]:
        return await self._add(JobType.CREATE_FORM_SUBMISSION, data, "booking_id")

    async def schedule_form_reminder(self, data: dict[str, Any]) -> Optional[JobHandle]:
        return await self._add(
            JobType.SEND_FORM_REMINDER,
            data,
            "form_submission_id",
            delay=timedelta(hours=self.settings.form_reminder_delay_hours),
        )

    async def schedule_form_overdue_check(self, data: dict[str, Any]) -> Optional[JobHandle]:
        return await self._add(
            JobType.CHECK_FORM_OVERDUE,
            data,
            "form_submission_id",
            delay=timedelta(hours=self.settings.form_overdue_delay_hours),
        )

    async def cancel_scheduled_jobs_by_conversation(self, conversation_id: str) -> int:
        return await self.queue.cancel_by_correlation_key(QueueName.AUTOMATION, "conversation_id", conversation_id)

    async def cancel_scheduled_jobs_by_booking(self, booking_id: str) -> int:
        return await self.queue.cancel_by_correlation_key(QueueName.AUTOMATION, "booking_id", booking_id)

    async def cancel_scheduled_jobs_by_form_submission(self, form_submission_id: str) -> int:
        return await self.queue.cancel_by_correlation_key(
            QueueName.AUTOMATION, "form_submission_id", form_submission_id
        )

    async def cancel_booking_reminder(self, booking_id: str) -> int:
        return await self.queue.cancel_by_correlation_key(
            QueueName.AUTOMATION, "booking_id", booking_id, job_type=JobType.SEND_BOOKING_REMINDER
        )

    async def get_job_counts(self) -> Optional[dict[str, Any]]:
        return await self.queue.get_job_counts(QueueName.AUTOMATION)
