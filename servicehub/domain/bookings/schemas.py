"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import BookingStatus
from ...shared.validators import validate_email, validate_phone


class BookingCreate(BaseModel):
    contactId: str
    bookingTypeId: str
    scheduledAt: datetime
    conversationId: Optional[str] = None
    notes: Optional[str] = None


class BookingUpdate(BaseModel):
    scheduledAt: Optional[datetime] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def known_status(cls, v):
        if v is None:
            return v
        v = v.upper()
        if v not in {s.value for s in BookingStatus}:
            raise ValueError(f"Status must be one of {', '.join(s.value for s in BookingStatus)}")
        return v


class InventoryUsage(BaseModel):
    itemId: str
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def positive(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v


class PublicBookingCreate(BaseModel):
    """Self-service booking from the public booking page"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    bookingTypeId: str
    scheduledAt: datetime
    notes: Optional[str] = None
    items: list[InventoryUsage] = []

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v):
        return validate_phone(v)

    @model_validator(mode="after")
    def require_channel(self):
        if not self.email and not self.phone:
            raise ValueError("An email or phone number is required")
        return self


class BookingResponse(BaseModel):
    id: str
    contactId: str
    bookingTypeId: str
    conversationId: Optional[str] = None
    status: str
    scheduledAt: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
