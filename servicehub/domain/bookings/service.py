"""
Booking service - Business logic for booking operations

Every operation commits first, then emits its event and schedules automation.
Scheduling is best-effort: a booking succeeds even when the queue is down.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...events import Events
from ...models import Booking, BookingInventory, BookingStatus
from ...shared.time import to_naive_utc
from ..contacts.repository import ContactRepository
from ..contacts.service import ContactService
from ..inbox.repository import ConversationRepository
from ..inventory.service import InventoryService
from .repository import BookingRepository
from .schemas import BookingCreate, BookingUpdate, PublicBookingCreate

logger = logging.getLogger(__name__)


def booking_snapshot(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "contact_id": booking.contact_id,
        "booking_type_id": booking.booking_type_id,
        "conversation_id": booking.conversation_id,
        "status": booking.status,
        "scheduled_at": booking.scheduled_at.isoformat(),
        "notes": booking.notes,
    }


def automation_job_data(booking: Booking) -> dict[str, Any]:
    data = {
        "workspace_id": booking.workspace_id,
        "booking_id": booking.id,
        "contact_id": booking.contact_id,
    }
    if booking.conversation_id:
        data["conversation_id"] = booking.conversation_id
    return data


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation
        self.repo = BookingRepository()

    def get_bookings(self, workspace_id: str, status: Optional[str] = None) -> list[Booking]:
        return self.repo.get_bookings(self.db, workspace_id, status)

    def get_booking(self, workspace_id: str, booking_id: str) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, workspace_id, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    async def create_booking(self, workspace_id: str, data: BookingCreate) -> Booking:
        contact = ContactRepository.get_contact_by_id(self.db, workspace_id, data.contactId)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        if not self.repo.get_booking_type(self.db, workspace_id, data.bookingTypeId):
            raise HTTPException(status_code=404, detail="Booking type not found")
        if data.conversationId and not ConversationRepository.get_conversation(
            self.db, workspace_id, data.conversationId
        ):
            raise HTTPException(status_code=404, detail="Conversation not found")

        booking = self.repo.create_booking(
            self.db,
            workspace_id,
            contact_id=contact.id,
            booking_type_id=data.bookingTypeId,
            conversation_id=data.conversationId,
            scheduled_at=to_naive_utc(data.scheduledAt),
            notes=data.notes,
            status=BookingStatus.CONFIRMED.value,
        )
        logger.info(f"✅ Booking {booking.id} created for contact {contact.id}")

        await self._start_booking_automation(booking)
        return booking

    async def create_public_booking(self, workspace_id: str, data: PublicBookingCreate) -> Booking:
        """
        Self-service booking: finds or creates the contact and their conversation,
        reserves inventory, and books as CONFIRMED in one commit.
        """
        booking_type = self.repo.get_booking_type(self.db, workspace_id, data.bookingTypeId)
        if not booking_type:
            raise HTTPException(status_code=404, detail="Booking type not found")

        contact, _created = ContactService(self.db, self.automation).find_or_create_contact(
            workspace_id, data.name, data.email, data.phone
        )
        conversation = ConversationRepository.get_or_create_conversation(self.db, workspace_id, contact.id)

        booking = Booking(
            workspace_id=workspace_id,
            contact_id=contact.id,
            booking_type_id=booking_type.id,
            conversation_id=conversation.id,
            scheduled_at=to_naive_utc(data.scheduledAt),
            notes=data.notes,
            status=BookingStatus.CONFIRMED.value,
        )
        self.db.add(booking)
        self.db.flush()

        inventory = InventoryService(self.db, self.automation)
        reserved = []
        try:
            for usage in data.items:
                item = inventory.reserve(workspace_id, usage.itemId, usage.quantity, f"Booking {booking.id}")
                self.db.add(BookingInventory(booking_id=booking.id, item_id=item.id, quantity=usage.quantity))
                reserved.append(item)
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"✅ Public booking {booking.id} created for contact {contact.id}")

        for item in reserved:
            inventory.announce_if_low(workspace_id, item)

        await self._start_booking_automation(booking)
        return booking

    async def update_booking(self, workspace_id: str, booking_id: str, data: BookingUpdate) -> Booking:
        booking = self.get_booking(workspace_id, booking_id)

        changes: dict[str, Any] = {}
        if data.scheduledAt is not None:
            scheduled_at = to_naive_utc(data.scheduledAt)
            if scheduled_at != booking.scheduled_at:
                booking.scheduled_at = scheduled_at
                changes["scheduled_at"] = scheduled_at.isoformat()
        if data.status is not None and data.status != booking.status:
            booking.status = data.status
            changes["status"] = data.status
        if data.notes is not None and data.notes != booking.notes:
            booking.notes = data.notes
            changes["notes"] = data.notes

        if not changes:
            return booking

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} updated: {', '.join(changes)}")

        self.automation.bus.emit(
            Events.BOOKING_UPDATED,
            {
                "workspace_id": workspace_id,
                "booking_id": booking.id,
                "booking": booking_snapshot(booking),
                "changes": changes,
            },
        )

        if "scheduled_at" in changes and booking.status == BookingStatus.CONFIRMED.value:
            # Only one reminder per booking may be pending
            await self.automation.scheduler.cancel_booking_reminder(booking.id)
            await self.automation.scheduler.schedule_booking_reminder(
                automation_job_data(booking), booking.scheduled_at
            )
        return booking

    def delete_booking(self, workspace_id: str, booking_id: str) -> None:
        booking = self.get_booking(workspace_id, booking_id)
        self.repo.delete_booking(self.db, booking)
        logger.info(f"🗑️ Booking {booking_id} deleted")
        self.automation.bus.emit(Events.BOOKING_DELETED, {"workspace_id": workspace_id, "booking_id": booking_id})

    async def _start_booking_automation(self, booking: Booking) -> None:
        self.automation.bus.emit(
            Events.BOOKING_CREATED,
            {
                "workspace_id": booking.workspace_id,
                "booking_id": booking.id,
                "booking": booking_snapshot(booking),
                "contact_id": booking.contact_id,
                "conversation_id": booking.conversation_id,
            },
        )

        scheduler = self.automation.scheduler
        job_data = automation_job_data(booking)
        await scheduler.schedule_booking_confirmation(job_data)
        await scheduler.schedule_booking_reminder(job_data, booking.scheduled_at)
        await scheduler.schedule_form_submission_creation(job_data)
