"""Message templates for automated notifications"""

from datetime import datetime
from typing import NamedTuple, Optional


class MessageType:
    WELCOME = "welcome"
    BOOKING_CONFIRMATION = "booking_confirmation"
    BOOKING_REMINDER = "booking_reminder"
    FORM_REMINDER = "form_reminder"
    FORM_OVERDUE_REMINDER = "form_overdue_reminder"
    INVENTORY_ALERT = "inventory_alert"


class RenderedMessage(NamedTuple):
    message_type: str
    subject: Optional[str]
    content: str


def _format_date(value: datetime) -> str:
    return value.strftime("%a, %b %d %Y at %H:%M UTC")


def welcome_message(contact_name: str) -> RenderedMessage:
    return RenderedMessage(
        MessageType.WELCOME,
        "Welcome!",
        f"Welcome {contact_name}! Thank you for contacting us. We'll get back to you shortly.",
    )


def booking_confirmation_message(booking_type_name: str, scheduled_at: datetime, booking_id: str) -> RenderedMessage:
    return RenderedMessage(
        MessageType.BOOKING_CONFIRMATION,
        "Booking Confirmed",
        f'Your booking for "{booking_type_name}" on {_format_date(scheduled_at)} is confirmed. '
        f"Reference: {booking_id}",
    )


def booking_reminder_message(booking_type_name: str, scheduled_at: datetime, booking_id: str) -> RenderedMessage:
    return RenderedMessage(
        MessageType.BOOKING_REMINDER,
        "Booking Reminder",
        f'Reminder: You have "{booking_type_name}" scheduled for {_format_date(scheduled_at)}. '
        f"Reference: {booking_id}",
    )


def form_reminder_message(form_name: str, form_submission_id: str, overdue: bool = False) -> RenderedMessage:
    return RenderedMessage(
        MessageType.FORM_OVERDUE_REMINDER if overdue else MessageType.FORM_REMINDER,
        "Form Reminder",
        f'Please complete the form "{form_name}" for your booking. Reference: {form_submission_id}',
    )


def inventory_alert_email(item_name: str, quantity: int, threshold: int) -> RenderedMessage:
    return RenderedMessage(
        MessageType.INVENTORY_ALERT,
        "Inventory Alert",
        f"Alert: {item_name} is running low. Current quantity: {quantity} (threshold: {threshold}).",
    )


def inventory_alert_text(item_name: str, quantity: int, threshold: int) -> str:
    return f'Inventory item "{item_name}" is low: {quantity} remaining (threshold: {threshold})'


def form_overdue_alert_text(form_name: str, contact_name: str) -> str:
    return f'Form "{form_name}" is overdue for {contact_name}'
