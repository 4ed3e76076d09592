"""Automation router - status, integration logs and alerts"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id
from .schemas import AlertResponse, AutomationStatusResponse, IntegrationLogResponse
from .service import AutomationService

router = APIRouter(tags=["Automation"])


def get_automation_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> AutomationService:
    return AutomationService(db, automation)


@router.get("/automation/status", response_model=AutomationStatusResponse)
async def get_automation_status(
    workspace_id: str = Depends(get_workspace_id),
    service: AutomationService = Depends(get_automation_service),
):
    """Queue depth, per-event dispatch stats and listener counts"""
    return await service.get_status()


@router.get("/automation/integration-logs", response_model=list[IntegrationLogResponse])
async def get_integration_logs(
    status: Optional[str] = Query(None),
    since: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    workspace_id: str = Depends(get_workspace_id),
    service: AutomationService = Depends(get_automation_service),
):
    return service.get_integration_logs(workspace_id, status, since, limit)


@router.get("/alerts", response_model=list[AlertResponse])
async def get_alerts(
    status: Optional[str] = Query(None),
    workspace_id: str = Depends(get_workspace_id),
    service: AutomationService = Depends(get_automation_service),
):
    return service.get_alerts(workspace_id, status)


@router.post("/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: str,
    workspace_id: str = Depends(get_workspace_id),
    service: AutomationService = Depends(get_automation_service),
):
    return service.resolve_alert(workspace_id, alert_id)
