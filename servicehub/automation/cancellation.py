"""
Cancellation Handlers
A human action supersedes scheduled automation: staff replies cancel the
conversation's pending jobs, cancelled or deleted bookings cancel theirs.
"""

import logging
from typing import Any, Callable

from ..events import EventBus, Events
from ..models import BookingStatus
from ..queue import AutomationScheduler

logger = logging.getLogger(__name__)


class CancellationHandlers:
    def __init__(self, bus: EventBus, scheduler: AutomationScheduler):
        self.bus = bus
        self.scheduler = scheduler

    def register(self) -> list[Callable[[], None]]:
        return [
            self.bus.on(Events.STAFF_REPLIED, self.on_staff_replied),
            self.bus.on(Events.CONTACT_REPLIED, self.on_contact_replied),
            self.bus.on(Events.BOOKING_UPDATED, self.on_booking_updated),
            self.bus.on(Events.BOOKING_DELETED, self.on_booking_deleted),
        ]

    async def on_staff_replied(self, payload: dict[str, Any]) -> int:
        conversation_id = payload["conversation_id"]
        cancelled = await self.scheduler.cancel_scheduled_jobs_by_conversation(conversation_id)
        logger.info(f"🚫 Staff replied in conversation {conversation_id} - cancelled {cancelled} scheduled job(s)")
        return cancelled

    async def on_contact_replied(self, payload: dict[str, Any]) -> None:
        logger.info(f"💬 Contact replied in conversation {payload.get('conversation_id')}")

    async def on_booking_updated(self, payload: dict[str, Any]) -> int:
        booking = payload.get("booking") or {}
        if booking.get("status") != BookingStatus.CANCELLED.value:
            return 0
        cancelled = await self.scheduler.cancel_scheduled_jobs_by_booking(payload["booking_id"])
        logger.info(f"🚫 Booking {payload['booking_id']} cancelled - cancelled {cancelled} scheduled job(s)")
        return cancelled

    async def on_booking_deleted(self, payload: dict[str, Any]) -> int:
        cancelled = await self.scheduler.cancel_scheduled_jobs_by_booking(payload["booking_id"])
        logger.info(f"🚫 Booking {payload['booking_id']} deleted - cancelled {cancelled} scheduled job(s)")
        return cancelled
