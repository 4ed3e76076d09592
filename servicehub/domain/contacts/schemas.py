"""Contact domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ...shared.validators import validate_email, validate_phone


class ContactCreate(BaseModel):
    """Schema for creating a new contact"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

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
            raise ValueError("A contact needs an email or a phone number")
        return self


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
