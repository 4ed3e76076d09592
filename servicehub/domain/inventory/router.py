"""Inventory router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id
from .schemas import InventoryAdjust, InventoryItemResponse
from .service import InventoryService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def get_inventory_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> InventoryService:
    return InventoryService(db, automation)


@router.get("", response_model=list[InventoryItemResponse])
async def get_items(
    workspace_id: str = Depends(get_workspace_id),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.get_items(workspace_id)


@router.get("/low-stock", response_model=list[InventoryItemResponse])
async def get_low_stock_items(
    workspace_id: str = Depends(get_workspace_id),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.get_low_stock_items(workspace_id)


@router.post("/{item_id}/adjust", response_model=InventoryItemResponse)
async def adjust_quantity(
    item_id: str,
    data: InventoryAdjust,
    workspace_id: str = Depends(get_workspace_id),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.adjust_quantity(workspace_id, item_id, data)
