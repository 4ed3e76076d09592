"""Automation repository - reads and writes the automation core needs"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ..models import (
    Alert,
    AlertStatus,
    Booking,
    BookingType,
    Contact,
    FormSubmission,
    FormSubmissionStatus,
    IntegrationLog,
    IntegrationLogStatus,
    InventoryItem,
    Message,
    User,
    WorkspaceRole,
    WorkspaceUser,
)
from ..shared.time import utcnow

# A FAILED log means nothing reached the recipient, so it must not block a later attempt
DEDUP_LOG_STATUSES = (
    IntegrationLogStatus.PENDING.value,
    IntegrationLogStatus.RETRYING.value,
    IntegrationLogStatus.SENT.value,
)


class AutomationRepository:
    @staticmethod
    def get_contact(db: Session, workspace_id: str, contact_id: str) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id, Contact.workspace_id == workspace_id).first()

    @staticmethod
    def get_booking(db: Session, workspace_id: str, booking_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.contact),
                joinedload(Booking.booking_type).joinedload(BookingType.forms),
            )
            .filter(Booking.id == booking_id, Booking.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def get_form_submission(db: Session, workspace_id: str, form_submission_id: str) -> Optional[FormSubmission]:
        return (
            db.query(FormSubmission)
            .join(Booking, FormSubmission.booking_id == Booking.id)
            .options(
                joinedload(FormSubmission.form),
                joinedload(FormSubmission.booking).joinedload(Booking.contact),
            )
            .filter(FormSubmission.id == form_submission_id, Booking.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def find_form_submission(db: Session, booking_id: str, form_id: str) -> Optional[FormSubmission]:
        return (
            db.query(FormSubmission)
            .filter(FormSubmission.booking_id == booking_id, FormSubmission.form_id == form_id)
            .first()
        )

    @staticmethod
    def create_form_submission(db: Session, booking_id: str, form_id: str) -> FormSubmission:
        submission = FormSubmission(
            booking_id=booking_id,
            form_id=form_id,
            status=FormSubmissionStatus.PENDING.value,
        )
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def mark_form_submission_overdue(db: Session, form_submission_id: str) -> bool:
        """
        PENDING -> OVERDUE as a single conditional update.
        Returns True only for the caller that performed the transition.
        """
        updated = (
            db.query(FormSubmission)
            .filter(
                FormSubmission.id == form_submission_id,
                FormSubmission.status == FormSubmissionStatus.PENDING.value,
            )
            .update(
                {FormSubmission.status: FormSubmissionStatus.OVERDUE.value, FormSubmission.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1

    @staticmethod
    def get_inventory_item(db: Session, workspace_id: str, item_id: str) -> Optional[InventoryItem]:
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def get_owner_email(db: Session, workspace_id: str) -> Optional[str]:
        owner = (
            db.query(User)
            .join(WorkspaceUser, WorkspaceUser.user_id == User.id)
            .filter(WorkspaceUser.workspace_id == workspace_id, WorkspaceUser.role == WorkspaceRole.OWNER.value)
            .first()
        )
        return owner.email if owner else None

    @staticmethod
    def find_recent_notification(
        db: Session,
        workspace_id: str,
        message_type: str,
        recipient: str,
        entity_id: Optional[str],
        since: datetime,
    ) -> Optional[IntegrationLog]:
        query = db.query(IntegrationLog).filter(
            IntegrationLog.workspace_id == workspace_id,
            IntegrationLog.message_type == message_type,
            IntegrationLog.recipient == recipient,
            IntegrationLog.status.in_(DEDUP_LOG_STATUSES),
            IntegrationLog.created_at >= since,
        )
        if entity_id is not None:
            query = query.filter(IntegrationLog.entity_id == entity_id)
        return query.first()

    @staticmethod
    def find_active_alert(db: Session, workspace_id: str, alert_type: str, subject_id: str) -> Optional[Alert]:
        return (
            db.query(Alert)
            .filter(
                Alert.workspace_id == workspace_id,
                Alert.type == alert_type,
                Alert.subject_id == subject_id,
                Alert.status == AlertStatus.ACTIVE.value,
            )
            .first()
        )

    @staticmethod
    def create_alert(db: Session, workspace_id: str, alert_type: str, subject_id: str, message: str) -> Alert:
        alert = Alert(
            workspace_id=workspace_id,
            type=alert_type,
            subject_id=subject_id,
            message=message,
            status=AlertStatus.ACTIVE.value,
        )
        db.add(alert)
        db.commit()
        db.refresh(alert)
        return alert

    @staticmethod
    def resolve_alerts(db: Session, workspace_id: str, alert_type: str, subject_id: str) -> int:
        resolved = (
            db.query(Alert)
            .filter(
                Alert.workspace_id == workspace_id,
                Alert.type == alert_type,
                Alert.subject_id == subject_id,
                Alert.status == AlertStatus.ACTIVE.value,
            )
            .update({Alert.status: AlertStatus.RESOLVED.value, Alert.resolved_at: utcnow()}, synchronize_session=False)
        )
        db.commit()
        return resolved

    @staticmethod
    def latest_message(db: Session, conversation_id: str) -> Optional[Message]:
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .first()
        )
