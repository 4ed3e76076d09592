"""Integration repository - Database operations for integrations and send logs"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Integration, IntegrationLog, IntegrationLogStatus
from ..shared.time import utcnow


class IntegrationRepository:
    @staticmethod
    def get_active_integration(db: Session, workspace_id: str, channel: str) -> Optional[Integration]:
        return (
            db.query(Integration)
            .filter(
                Integration.workspace_id == workspace_id,
                Integration.type == channel,
                Integration.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def create_log(db: Session, **log_data) -> IntegrationLog:
        """Record a send attempt before it happens (status PENDING)"""
        log = IntegrationLog(status=IntegrationLogStatus.PENDING.value, retry_count=0, **log_data)
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def record_attempt_failure(db: Session, log: IntegrationLog, error: str) -> IntegrationLog:
        log.retry_count = (log.retry_count or 0) + 1
        log.error = error
        log.status = IntegrationLogStatus.RETRYING.value
        db.commit()
        return log

    @staticmethod
    def mark_sent(db: Session, log: IntegrationLog, provider_message_id: Optional[str]) -> IntegrationLog:
        log.status = IntegrationLogStatus.SENT.value
        log.provider_message_id = provider_message_id
        log.sent_at = utcnow()
        db.commit()
        return log

    @staticmethod
    def mark_failed(db: Session, log: IntegrationLog, error: str) -> IntegrationLog:
        log.status = IntegrationLogStatus.FAILED.value
        log.error = error
        db.commit()
        return log

    @staticmethod
    def list_logs(
        db: Session,
        workspace_id: str,
        status: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[IntegrationLog]:
        query = db.query(IntegrationLog).filter(IntegrationLog.workspace_id == workspace_id)
        if status:
            query = query.filter(IntegrationLog.status == status)
        if since:
            query = query.filter(IntegrationLog.created_at >= since)
        return query.order_by(IntegrationLog.created_at.desc()).limit(limit).all()
