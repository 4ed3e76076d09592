"""
Automation job processors
One coroutine per JobType. Each re-reads current state before acting, so a
job that runs late, twice, or after a cancellation race is harmless.
"""

import logging
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ..events import EventBus, Events
from ..notifications import SendResult
from ..queue import JobContext, JobType
from .handlers import AutomationHandlers
from .repository import AutomationRepository

logger = logging.getLogger(__name__)

Processor = Callable[[JobContext], Awaitable[Any]]


def _summary(results: list[SendResult]) -> dict[str, int]:
    sent = sum(1 for r in results if r.success)
    return {"sent": sent, "failed": len(results) - sent}


class AutomationProcessors:
    def __init__(self, bus: EventBus, handlers: AutomationHandlers, session_factory: sessionmaker):
        self.bus = bus
        self.handlers = handlers
        self.session_factory = session_factory
        self.repo = AutomationRepository()

        self._processors: dict[JobType, Processor] = {
            JobType.SEND_BOOKING_CONFIRMATION: self.send_booking_confirmation,
            JobType.SEND_BOOKING_REMINDER: self.send_booking_reminder,
            JobType.CREATE_FORM_SUBMISSION: self.create_form_submission,
            JobType.SEND_FORM_REMINDER: self.send_form_reminder,
            JobType.CHECK_FORM_OVERDUE: self.check_form_overdue,
        }
        missing = set(JobType) - set(self._processors)
        if missing:
            raise RuntimeError(f"Job types without a processor: {sorted(t.value for t in missing)}")

    def as_map(self) -> dict[JobType, Processor]:
        return dict(self._processors)

    async def send_booking_confirmation(self, job: JobContext) -> dict[str, int]:
        workspace_id = job.data["workspace_id"]
        booking_id = job.data["booking_id"]
        summary = _summary(await self.handlers.send_booking_confirmation(workspace_id, booking_id))
        if summary["sent"] or summary["failed"]:
            self.bus.emit(Events.SEND_CONFIRMATION, {"workspace_id": workspace_id, "booking_id": booking_id, **summary})
        return summary

    async def send_booking_reminder(self, job: JobContext) -> dict[str, int]:
        workspace_id = job.data["workspace_id"]
        booking_id = job.data["booking_id"]
        summary = _summary(await self.handlers.send_booking_reminder(workspace_id, booking_id))
        if summary["sent"] or summary["failed"]:
            self.bus.emit(Events.SEND_REMINDER, {"workspace_id": workspace_id, "booking_id": booking_id, **summary})
        return summary

    async def create_form_submission(self, job: JobContext) -> dict[str, int]:
        """One PENDING submission per form of the booking's type; existing ones are left as they are"""
        workspace_id = job.data["workspace_id"]
        booking_id = job.data["booking_id"]

        created: list[tuple[str, str]] = []
        db = self.session_factory()
        try:
            booking = self.repo.get_booking(db, workspace_id, booking_id)
            if not booking:
                logger.warning(f"⚠️ Booking {booking_id} not found - no form submissions created")
                return {"created": 0}

            contact_id = booking.contact_id
            form_ids = [form.id for form in (booking.booking_type.forms if booking.booking_type else [])]

            for form_id in form_ids:
                if self.repo.find_form_submission(db, booking_id, form_id):
                    continue
                try:
                    submission = self.repo.create_form_submission(db, booking_id, form_id)
                except IntegrityError:
                    # A concurrent delivery of this job created it first
                    db.rollback()
                    continue
                created.append((submission.id, form_id))
        finally:
            db.close()

        for submission_id, form_id in created:
            logger.info(f"📝 Form submission {submission_id} created for booking {booking_id}")
            self.bus.emit(
                Events.FORM_PENDING,
                {
                    "workspace_id": workspace_id,
                    "form_submission_id": submission_id,
                    "booking_id": booking_id,
                    "form_id": form_id,
                    "contact_id": contact_id,
                },
            )
        return {"created": len(created)}

    async def send_form_reminder(self, job: JobContext) -> dict[str, int]:
        workspace_id = job.data["workspace_id"]
        submission_id = job.data["form_submission_id"]
        summary = _summary(await self.handlers.send_form_reminder(workspace_id, submission_id))
        if summary["sent"] or summary["failed"]:
            self.bus.emit(
                Events.SEND_FORM_REMINDER,
                {"workspace_id": workspace_id, "form_submission_id": submission_id, **summary},
            )
        return summary

    async def check_form_overdue(self, job: JobContext) -> dict[str, bool]:
        workspace_id = job.data["workspace_id"]
        submission_id = job.data["form_submission_id"]

        db = self.session_factory()
        try:
            submission = self.repo.get_form_submission(db, workspace_id, submission_id)
            if not submission:
                logger.warning(f"⚠️ Form submission {submission_id} not found - skipping overdue check")
                return {"overdue": False}
            booking_id, form_id = submission.booking_id, submission.form_id
            transitioned = self.repo.mark_form_submission_overdue(db, submission_id)
        finally:
            db.close()

        if not transitioned:
            logger.info(f"⏭️ Form submission {submission_id} no longer pending - overdue check is a no-op")
            return {"overdue": False}

        logger.info(f"⏰ Form submission {submission_id} is now overdue")
        self.bus.emit(
            Events.FORM_OVERDUE,
            {
                "workspace_id": workspace_id,
                "form_submission_id": submission_id,
                "booking_id": booking_id,
                "form_id": form_id,
            },
        )
        return {"overdue": True}
