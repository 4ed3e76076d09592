"""
Automation Handlers
Event bus subscribers that turn domain events into notifications, alerts and
scheduled jobs. Every side effect is preceded by an idempotency check and a
re-read of current state; failures are logged here and never reach the emitter.
"""

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import sessionmaker

from ..config import AutomationSettings
from ..events import EventBus, Events
from ..models import AlertType, BookingStatus, Channel, Contact, FormSubmissionStatus, MessageSender
from ..notifications import NotificationGateway, SendResult
from ..notifications.messages import (
    RenderedMessage,
    booking_confirmation_message,
    booking_reminder_message,
    form_overdue_alert_text,
    form_reminder_message,
    inventory_alert_email,
    inventory_alert_text,
    welcome_message,
)
from ..queue import AutomationScheduler
from .idempotency import IdempotencyGuard
from .repository import AutomationRepository

logger = logging.getLogger(__name__)


def contact_channels(contact: Contact) -> list[tuple[str, str]]:
    """(channel, recipient) for every channel the contact can be reached on"""
    channels = []
    if contact.email:
        channels.append((Channel.EMAIL.value, contact.email))
    if contact.phone:
        channels.append((Channel.SMS.value, contact.phone))
    return channels


class AutomationHandlers:
    def __init__(
        self,
        bus: EventBus,
        scheduler: AutomationScheduler,
        gateway: NotificationGateway,
        session_factory: sessionmaker,
        guard: IdempotencyGuard,
        settings: Optional[AutomationSettings] = None,
    ):
        self.bus = bus
        self.scheduler = scheduler
        self.gateway = gateway
        self.session_factory = session_factory
        self.guard = guard
        self.settings = settings or AutomationSettings()
        self.repo = AutomationRepository()

    def register(self) -> list[Callable[[], None]]:
        return [
            self.bus.on(Events.CONTACT_CREATED, self.on_contact_created),
            self.bus.on(Events.BOOKING_CREATED, self.on_booking_created),
            self.bus.on(Events.INVENTORY_LOW, self.on_inventory_low),
            self.bus.on(Events.FORM_PENDING, self.on_form_pending),
            self.bus.on(Events.FORM_OVERDUE, self.on_form_overdue),
            self.bus.on(Events.FORM_COMPLETED, self.on_form_completed),
        ]

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_once(
        self,
        workspace_id: str,
        channel: str,
        recipient: str,
        message: RenderedMessage,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> Optional[SendResult]:
        """Send unless the same message went to this recipient inside the dedup window. None means skipped."""
        key = self.guard.notification_key(workspace_id, message.message_type, recipient, entity_id)
        async with self.guard.hold(key):
            db = self.session_factory()
            try:
                already_sent = self.guard.notification_already_sent(
                    db, workspace_id, message.message_type, recipient, entity_id
                )
            finally:
                db.close()

            if already_sent:
                logger.info(f"⏭️ {message.message_type} already sent to {recipient} recently - skipping")
                return None

            return await self.gateway.send(
                workspace_id,
                channel,
                recipient,
                message.content,
                subject=message.subject,
                message_type=message.message_type,
                entity_type=entity_type,
                entity_id=entity_id,
            )

    async def notify_contact(
        self,
        workspace_id: str,
        contact: Contact,
        message: RenderedMessage,
        entity_type: str,
        entity_id: str,
    ) -> list[SendResult]:
        """Send on every channel the contact has; a failure on one channel doesn't stop the others"""
        results = []
        for channel, recipient in contact_channels(contact):
            try:
                result = await self.send_once(workspace_id, channel, recipient, message, entity_type, entity_id)
            except Exception as e:
                logger.error(f"❌ {message.message_type} via {channel} to {recipient} failed: {e}", exc_info=True)
                continue
            if result is not None:
                results.append(result)
        return results

    async def send_booking_confirmation(self, workspace_id: str, booking_id: str) -> list[SendResult]:
        db = self.session_factory()
        try:
            booking = self.repo.get_booking(db, workspace_id, booking_id)
        finally:
            db.close()

        if not booking:
            logger.warning(f"⚠️ Booking {booking_id} not found - skipping confirmation")
            return []
        if booking.status == BookingStatus.CANCELLED.value:
            logger.info(f"⏭️ Booking {booking_id} is cancelled - skipping confirmation")
            return []

        message = booking_confirmation_message(booking.booking_type.name, booking.scheduled_at, booking.id)
        return await self.notify_contact(workspace_id, booking.contact, message, "booking", booking.id)

    async def send_booking_reminder(self, workspace_id: str, booking_id: str) -> list[SendResult]:
        db = self.session_factory()
        try:
            booking = self.repo.get_booking(db, workspace_id, booking_id)
            latest_message = None
            if booking and booking.conversation_id and self.settings.reminder_skip_after_staff_reply:
                latest_message = self.repo.latest_message(db, booking.conversation_id)
        finally:
            db.close()

        if not booking:
            logger.warning(f"⚠️ Booking {booking_id} not found - skipping reminder")
            return []
        if booking.status != BookingStatus.CONFIRMED.value:
            logger.info(f"⏭️ Booking {booking_id} is {booking.status} - skipping reminder")
            return []
        if latest_message is not None and latest_message.sender == MessageSender.STAFF.value:
            logger.info(f"⏭️ Staff already replied in conversation {booking.conversation_id} - skipping reminder")
            return []

        message = booking_reminder_message(booking.booking_type.name, booking.scheduled_at, booking.id)
        return await self.notify_contact(workspace_id, booking.contact, message, "booking", booking.id)

    async def send_form_reminder(
        self, workspace_id: str, form_submission_id: str, overdue: bool = False
    ) -> list[SendResult]:
        db = self.session_factory()
        try:
            submission = self.repo.get_form_submission(db, workspace_id, form_submission_id)
        finally:
            db.close()

        if not submission:
            logger.warning(f"⚠️ Form submission {form_submission_id} not found - skipping reminder")
            return []

        expected = FormSubmissionStatus.OVERDUE.value if overdue else FormSubmissionStatus.PENDING.value
        if submission.status != expected:
            logger.info(f"⏭️ Form submission {form_submission_id} is {submission.status} - skipping reminder")
            return []

        message = form_reminder_message(submission.form.name, submission.id, overdue=overdue)
        return await self.notify_contact(
            workspace_id, submission.booking.contact, message, "form_submission", submission.id
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def on_contact_created(self, payload: dict[str, Any]) -> None:
        workspace_id = payload["workspace_id"]
        contact_id = payload["contact_id"]
        try:
            db = self.session_factory()
            try:
                contact = self.repo.get_contact(db, workspace_id, contact_id)
            finally:
                db.close()

            if not contact:
                logger.warning(f"⚠️ Contact {contact_id} not found - skipping welcome message")
                return

            await self.notify_contact(workspace_id, contact, welcome_message(contact.name), "contact", contact.id)
        except Exception as e:
            logger.error(f"❌ Error handling contact created for {contact_id}: {e}", exc_info=True)

    async def on_booking_created(self, payload: dict[str, Any]) -> None:
        booking_id = payload["booking_id"]
        try:
            await self.send_booking_confirmation(payload["workspace_id"], booking_id)
        except Exception as e:
            logger.error(f"❌ Error handling booking created for {booking_id}: {e}", exc_info=True)

    async def on_inventory_low(self, payload: dict[str, Any]) -> None:
        workspace_id = payload["workspace_id"]
        item_id = payload["item_id"]
        alert_type = AlertType.INVENTORY_LOW.value
        try:
            async with self.guard.hold(self.guard.alert_key(workspace_id, alert_type, item_id)):
                db = self.session_factory()
                try:
                    item = self.repo.get_inventory_item(db, workspace_id, item_id)
                    if not item:
                        logger.warning(f"⚠️ Inventory item {item_id} not found - skipping low stock alert")
                        return
                    name, quantity, threshold = item.name, item.quantity, item.threshold

                    if quantity > threshold:
                        logger.info(f"⏭️ Inventory item {item_id} restocked ({quantity} > {threshold}) - no alert")
                        return
                    if self.guard.alert_already_active(db, workspace_id, alert_type, item_id):
                        logger.info(f"⏭️ Active low stock alert already exists for item {item_id} - skipping")
                        return

                    self.repo.create_alert(
                        db, workspace_id, alert_type, item_id, inventory_alert_text(name, quantity, threshold)
                    )
                    owner_email = self.repo.get_owner_email(db, workspace_id)
                finally:
                    db.close()

            logger.info(f"🚨 Low stock alert created for {name} ({quantity}/{threshold})")

            if owner_email:
                await self.send_once(
                    workspace_id,
                    Channel.EMAIL.value,
                    owner_email,
                    inventory_alert_email(name, quantity, threshold),
                    "inventory_item",
                    item_id,
                )
            else:
                logger.warning(f"⚠️ No owner email for workspace {workspace_id} - low stock email not sent")
        except Exception as e:
            logger.error(f"❌ Error handling inventory low for {item_id}: {e}", exc_info=True)

    async def on_form_pending(self, payload: dict[str, Any]) -> None:
        data = {
            "workspace_id": payload["workspace_id"],
            "form_submission_id": payload["form_submission_id"],
            "booking_id": payload["booking_id"],
            "form_id": payload["form_id"],
            "contact_id": payload.get("contact_id"),
        }
        try:
            await self.scheduler.schedule_form_reminder(data)
            await self.scheduler.schedule_form_overdue_check(data)
        except Exception as e:
            logger.error(f"❌ Error scheduling form jobs for {data['form_submission_id']}: {e}", exc_info=True)

    async def on_form_overdue(self, payload: dict[str, Any]) -> None:
        workspace_id = payload["workspace_id"]
        submission_id = payload["form_submission_id"]
        alert_type = AlertType.FORM_OVERDUE.value
        try:
            async with self.guard.hold(self.guard.alert_key(workspace_id, alert_type, submission_id)):
                db = self.session_factory()
                try:
                    submission = self.repo.get_form_submission(db, workspace_id, submission_id)
                    if not submission:
                        logger.warning(f"⚠️ Form submission {submission_id} not found - skipping overdue alert")
                        return
                    if submission.status != FormSubmissionStatus.OVERDUE.value:
                        logger.info(f"⏭️ Form submission {submission_id} is {submission.status} - no overdue alert")
                        return
                    if self.guard.alert_already_active(db, workspace_id, alert_type, submission_id):
                        logger.info(f"⏭️ Overdue alert already active for form submission {submission_id}")
                        return

                    self.repo.create_alert(
                        db,
                        workspace_id,
                        alert_type,
                        submission_id,
                        form_overdue_alert_text(submission.form.name, submission.booking.contact.name),
                    )
                finally:
                    db.close()

            logger.info(f"🚨 Overdue alert created for form submission {submission_id}")
            await self.send_form_reminder(workspace_id, submission_id, overdue=True)
        except Exception as e:
            logger.error(f"❌ Error handling form overdue for {submission_id}: {e}", exc_info=True)

    async def on_form_completed(self, payload: dict[str, Any]) -> None:
        workspace_id = payload["workspace_id"]
        submission_id = payload["form_submission_id"]
        try:
            db = self.session_factory()
            try:
                resolved = self.repo.resolve_alerts(db, workspace_id, AlertType.FORM_OVERDUE.value, submission_id)
            finally:
                db.close()
            if resolved:
                logger.info(f"✅ Resolved {resolved} overdue alert(s) for form submission {submission_id}")

            await self.scheduler.cancel_scheduled_jobs_by_form_submission(submission_id)
        except Exception as e:
            logger.error(f"❌ Error handling form completed for {submission_id}: {e}", exc_info=True)
