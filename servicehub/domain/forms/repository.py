"""Form submission repository - Data access layer"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, FormSubmission


class FormSubmissionRepository:
    @staticmethod
    def get_submissions(db: Session, workspace_id: str, status: Optional[str] = None) -> list[FormSubmission]:
        query = (
            db.query(FormSubmission)
            .join(Booking, FormSubmission.booking_id == Booking.id)
            .options(joinedload(FormSubmission.form))
            .filter(Booking.workspace_id == workspace_id)
        )
        if status:
            query = query.filter(FormSubmission.status == status)
        return query.order_by(FormSubmission.created_at.desc()).all()

    @staticmethod
    def get_submission(db: Session, workspace_id: str, submission_id: str) -> Optional[FormSubmission]:
        return (
            db.query(FormSubmission)
            .join(Booking, FormSubmission.booking_id == Booking.id)
            .options(joinedload(FormSubmission.form))
            .filter(FormSubmission.id == submission_id, Booking.workspace_id == workspace_id)
            .first()
        )
