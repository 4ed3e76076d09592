"""Inventory repository - Database operations for inventory items"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import InventoryItem, InventoryLog


class InventoryRepository:
    @staticmethod
    def get_items(db: Session, workspace_id: str) -> list[InventoryItem]:
        return db.query(InventoryItem).filter(InventoryItem.workspace_id == workspace_id).order_by(InventoryItem.name).all()

    @staticmethod
    def get_low_stock_items(db: Session, workspace_id: str) -> list[InventoryItem]:
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.workspace_id == workspace_id, InventoryItem.quantity <= InventoryItem.threshold)
            .order_by(InventoryItem.name)
            .all()
        )

    @staticmethod
    def get_item_for_update(db: Session, workspace_id: str, item_id: str) -> Optional[InventoryItem]:
        """Row-locked on databases that support it, so concurrent deductions serialize"""
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.workspace_id == workspace_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def apply_change(db: Session, item: InventoryItem, change: int, reason: Optional[str]) -> InventoryLog:
        """Change the quantity and log it. Does not commit."""
        item.quantity += change
        log = InventoryLog(item_id=item.id, change=change, reason=reason)
        db.add(log)
        return log
