"""Event payload models - one per event name. Extra fields are allowed and passed through."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class EventPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    workspace_id: str


class ContactCreatedPayload(EventPayload):
    contact_id: str
    contact: dict[str, Any]


class BookingCreatedPayload(EventPayload):
    booking_id: str
    booking: dict[str, Any]
    contact_id: str
    conversation_id: Optional[str] = None


class BookingUpdatedPayload(EventPayload):
    booking_id: str
    booking: dict[str, Any]
    changes: dict[str, Any] = {}


class BookingDeletedPayload(EventPayload):
    booking_id: str


class FormPendingPayload(EventPayload):
    form_submission_id: str
    booking_id: str
    form_id: str
    contact_id: Optional[str] = None


class FormCompletedPayload(EventPayload):
    form_submission_id: str
    booking_id: str
    form_id: str


class FormOverduePayload(EventPayload):
    form_submission_id: str
    booking_id: str
    form_id: str


class InventoryLowPayload(EventPayload):
    item_id: str
    item: dict[str, Any]
    quantity: int
    threshold: int


class ConversationMessagePayload(EventPayload):
    """StaffReplied / ContactReplied"""

    conversation_id: str
    message_id: str
    message: dict[str, Any]


class AutomationSentPayload(EventPayload):
    """Emitted by job processors after an automated send"""

    booking_id: Optional[str] = None
    form_submission_id: Optional[str] = None
    sent: int = 0
    failed: int = 0
