"""Automation service - queue status, delivery audit and alerts"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...models import Alert, AlertStatus, IntegrationLog
from ...notifications.repository import IntegrationRepository
from ...shared.time import to_naive_utc, utcnow
from .repository import AlertRepository
from .schemas import AutomationStatusResponse

logger = logging.getLogger(__name__)


class AutomationService:
    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation

    async def get_status(self) -> AutomationStatusResponse:
        bus = self.automation.bus
        return AutomationStatusResponse(
            enabled=self.automation.settings.enabled,
            queueEnabled=self.automation.queue.enabled,
            jobCounts=await self.automation.scheduler.get_job_counts(),
            events=self.automation.metrics.snapshot(),
            listeners={name: bus.listener_count(name) for name in bus.event_names()},
            pendingDispatches=bus.pending_count,
        )

    def get_integration_logs(
        self, workspace_id: str, status: Optional[str], since: Optional[datetime], limit: int
    ) -> list[IntegrationLog]:
        return IntegrationRepository.list_logs(
            self.db, workspace_id, status=status, since=to_naive_utc(since) if since else None, limit=limit
        )

    def get_alerts(self, workspace_id: str, status: Optional[str]) -> list[Alert]:
        return AlertRepository.get_alerts(self.db, workspace_id, status)

    def resolve_alert(self, workspace_id: str, alert_id: str) -> Alert:
        alert = AlertRepository.get_alert(self.db, workspace_id, alert_id)
        if not alert:
            raise HTTPException(status_code=404, detail="Alert not found")
        if alert.status != AlertStatus.RESOLVED.value:
            alert.status = AlertStatus.RESOLVED.value
            alert.resolved_at = utcnow()
            self.db.commit()
            self.db.refresh(alert)
            logger.info(f"✅ Alert {alert.id} resolved manually")
        return alert
