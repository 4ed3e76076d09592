"""Inbox domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...models import Channel


class ReplyCreate(BaseModel):
    content: str
    channel: str = Channel.EMAIL.value

    @field_validator("content")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Reply content must not be empty")
        return v

    @field_validator("channel")
    @classmethod
    def known_channel(cls, v):
        v = v.upper()
        if v not in {c.value for c in Channel}:
            raise ValueError("Channel must be EMAIL or SMS")
        return v


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    channel: str
    sender: str
    content: str
    created_at: Optional[datetime] = None


class StaffReplyResponse(BaseModel):
    message: MessageResponse
    cancelledJobs: int
