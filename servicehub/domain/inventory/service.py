"""Inventory service - stock changes and low stock announcements"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...automation.repository import AutomationRepository
from ...events import Events
from ...models import AlertType, InventoryItem
from .repository import InventoryRepository
from .schemas import InventoryAdjust

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation
        self.repo = InventoryRepository()

    def get_items(self, workspace_id: str) -> list[InventoryItem]:
        return self.repo.get_items(self.db, workspace_id)

    def get_low_stock_items(self, workspace_id: str) -> list[InventoryItem]:
        return self.repo.get_low_stock_items(self.db, workspace_id)

    def reserve(self, workspace_id: str, item_id: str, quantity: int, reason: Optional[str]) -> InventoryItem:
        """Deduct stock without committing; the caller commits with its own writes"""
        item = self.repo.get_item_for_update(self.db, workspace_id, item_id)
        if not item:
            raise HTTPException(status_code=404, detail=f"Inventory item {item_id} not found")
        if item.quantity < quantity:
            raise HTTPException(
                status_code=400, detail=f"Insufficient stock for {item.name}: {item.quantity} available"
            )
        self.repo.apply_change(self.db, item, -quantity, reason)
        return item

    def adjust_quantity(self, workspace_id: str, item_id: str, data: InventoryAdjust) -> InventoryItem:
        item = self.repo.get_item_for_update(self.db, workspace_id, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Inventory item not found")
        if item.quantity + data.change < 0:
            raise HTTPException(status_code=400, detail=f"Insufficient stock for {item.name}")

        self.repo.apply_change(self.db, item, data.change, data.reason or "Manual adjustment")
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"📦 Inventory {item.name} adjusted by {data.change} -> {item.quantity}")

        if data.change < 0:
            self.announce_if_low(workspace_id, item)
        elif item.quantity > item.threshold:
            resolved = AutomationRepository.resolve_alerts(
                self.db, workspace_id, AlertType.INVENTORY_LOW.value, item.id
            )
            if resolved:
                logger.info(f"✅ Low stock alert resolved for {item.name}")
        return item

    def announce_if_low(self, workspace_id: str, item: InventoryItem) -> bool:
        """Emit inventory.low when the item sits at or below its threshold"""
        if item.quantity > item.threshold:
            return False
        logger.info(f"⚠️ Inventory {item.name} is low ({item.quantity}/{item.threshold})")
        self.automation.bus.emit(
            Events.INVENTORY_LOW,
            {
                "workspace_id": workspace_id,
                "item_id": item.id,
                "item": {"id": item.id, "name": item.name},
                "quantity": item.quantity,
                "threshold": item.threshold,
            },
        )
        return True
