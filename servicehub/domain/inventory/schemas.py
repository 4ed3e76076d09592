"""Inventory domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    quantity: int
    threshold: int
    updated_at: Optional[datetime] = None


class InventoryAdjust(BaseModel):
    """Positive change restocks, negative change deducts"""

    change: int
    reason: Optional[str] = None

    @field_validator("change")
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("Change must not be zero")
        return v
