"""
Event Registry
Canonical event names and the payload model each one carries.
"""

from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel

from .payloads import (
    AutomationSentPayload,
    BookingCreatedPayload,
    BookingDeletedPayload,
    BookingUpdatedPayload,
    ContactCreatedPayload,
    ConversationMessagePayload,
    FormCompletedPayload,
    FormOverduePayload,
    FormPendingPayload,
    InventoryLowPayload,
)


class Events:
    CONTACT_CREATED = "contact.created"

    BOOKING_CREATED = "booking.created"
    BOOKING_UPDATED = "booking.updated"
    BOOKING_DELETED = "booking.deleted"

    FORM_PENDING = "form.pending"
    FORM_COMPLETED = "form.completed"
    FORM_OVERDUE = "form.overdue"

    INVENTORY_LOW = "inventory.low"

    STAFF_REPLIED = "staff.replied"
    CONTACT_REPLIED = "contact.replied"

    SEND_CONFIRMATION = "automation.sendConfirmation"
    SEND_REMINDER = "automation.sendReminder"
    SEND_FORM_REMINDER = "automation.sendFormReminder"

    # Reserved: handler failures are re-routed here
    ERROR = "error"


class EventMetadata(NamedTuple):
    name: str
    description: str
    payload_model: type[BaseModel]
    required_fields: tuple[str, ...]


_REGISTRY: dict[str, EventMetadata] = {}


def _required_fields(model: type[BaseModel]) -> tuple[str, ...]:
    return tuple(name for name, field in model.model_fields.items() if field.is_required())


def register_event(name: str, payload_model: type[BaseModel], description: str = "") -> EventMetadata:
    """Add an event to the registry. Re-registering a name replaces its entry."""
    metadata = EventMetadata(
        name=name,
        description=description,
        payload_model=payload_model,
        required_fields=_required_fields(payload_model),
    )
    _REGISTRY[name] = metadata
    return metadata


register_event(Events.CONTACT_CREATED, ContactCreatedPayload, "Emitted when a new contact is created")
register_event(Events.BOOKING_CREATED, BookingCreatedPayload, "Emitted when a new booking is created")
register_event(Events.BOOKING_UPDATED, BookingUpdatedPayload, "Emitted when a booking is updated")
register_event(Events.BOOKING_DELETED, BookingDeletedPayload, "Emitted when a booking is deleted")
register_event(Events.FORM_PENDING, FormPendingPayload, "Emitted when a form submission is created and pending")
register_event(Events.FORM_COMPLETED, FormCompletedPayload, "Emitted when a form submission is completed")
register_event(Events.FORM_OVERDUE, FormOverduePayload, "Emitted when a form submission becomes overdue")
register_event(Events.INVENTORY_LOW, InventoryLowPayload, "Emitted when inventory drops to or below threshold")
register_event(Events.STAFF_REPLIED, ConversationMessagePayload, "Emitted when staff replies to a conversation")
register_event(Events.CONTACT_REPLIED, ConversationMessagePayload, "Emitted when a contact replies to a conversation")
register_event(Events.SEND_CONFIRMATION, AutomationSentPayload, "Booking confirmation sent by automation")
register_event(Events.SEND_REMINDER, AutomationSentPayload, "Booking reminder sent by automation")
register_event(Events.SEND_FORM_REMINDER, AutomationSentPayload, "Form reminder sent by automation")


def get_event_metadata(name: str) -> Optional[EventMetadata]:
    return _REGISTRY.get(name)


def validate_event_payload(name: str, payload: Union[dict[str, Any], BaseModel, None]) -> list[str]:
    """
    Check a payload against the required fields registered for an event.

    Returns the missing field names; an empty list means valid.
    Unregistered events are always valid.
    """
    metadata = _REGISTRY.get(name)
    if metadata is None:
        return []

    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    payload = payload or {}

    return [field for field in metadata.required_fields if payload.get(field) is None]
