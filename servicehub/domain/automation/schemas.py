"""Automation status and audit schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class AutomationStatusResponse(BaseModel):
    enabled: bool
    queueEnabled: bool
    jobCounts: Optional[dict[str, Any]] = None
    events: dict[str, dict[str, float]] = {}
    listeners: dict[str, int] = {}
    pendingDispatches: int = 0


class IntegrationLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    channel: str
    provider: str
    recipient: str
    subject: Optional[str] = None
    message_type: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    status: str
    error: Optional[str] = None
    retry_count: int
    provider_message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    subject_id: Optional[str] = None
    message: str
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
