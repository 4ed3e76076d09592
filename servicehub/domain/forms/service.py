"""Form submission service"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...events import Events
from ...models import FormSubmission, FormSubmissionStatus
from ...shared.time import utcnow
from .repository import FormSubmissionRepository

logger = logging.getLogger(__name__)


class FormSubmissionService:
    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation
        self.repo = FormSubmissionRepository()

    def get_submissions(self, workspace_id: str, status: Optional[str] = None) -> list[FormSubmission]:
        if status and status not in {s.value for s in FormSubmissionStatus}:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
        return self.repo.get_submissions(self.db, workspace_id, status)

    def complete_submission(self, workspace_id: str, submission_id: str) -> FormSubmission:
        """
        Mark a submission COMPLETED (from PENDING or OVERDUE) and emit form.completed.
        Completing an already completed submission is a no-op.
        """
        submission = self.repo.get_submission(self.db, workspace_id, submission_id)
        if not submission:
            raise HTTPException(status_code=404, detail="Form submission not found")
        if submission.status == FormSubmissionStatus.COMPLETED.value:
            return submission

        submission.status = FormSubmissionStatus.COMPLETED.value
        submission.completed_at = utcnow()
        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"📝 Form submission {submission.id} completed")

        self.automation.bus.emit(
            Events.FORM_COMPLETED,
            {
                "workspace_id": workspace_id,
                "form_submission_id": submission.id,
                "booking_id": submission.booking_id,
                "form_id": submission.form_id,
            },
        )
        return submission
