"""Alert repository - Data access layer"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Alert


class AlertRepository:
    @staticmethod
    def get_alerts(db: Session, workspace_id: str, status: Optional[str] = None) -> list[Alert]:
        query = db.query(Alert).filter(Alert.workspace_id == workspace_id)
        if status:
            query = query.filter(Alert.status == status)
        return query.order_by(Alert.created_at.desc()).all()

    @staticmethod
    def get_alert(db: Session, workspace_id: str, alert_id: str) -> Optional[Alert]:
        return db.query(Alert).filter(Alert.id == alert_id, Alert.workspace_id == workspace_id).first()
