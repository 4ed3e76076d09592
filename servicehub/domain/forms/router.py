"""Form submission router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id
from ...models import FormSubmission
from .schemas import FormSubmissionResponse
from .service import FormSubmissionService

router = APIRouter(prefix="/form-submissions", tags=["Forms"])


def get_form_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> FormSubmissionService:
    return FormSubmissionService(db, automation)


def to_response(submission: FormSubmission) -> FormSubmissionResponse:
    return FormSubmissionResponse(
        id=submission.id,
        bookingId=submission.booking_id,
        formId=submission.form_id,
        formName=submission.form.name if submission.form else None,
        status=submission.status,
        completedAt=submission.completed_at,
        created_at=submission.created_at,
    )


@router.get("", response_model=list[FormSubmissionResponse])
async def get_form_submissions(
    status: Optional[str] = Query(None),
    workspace_id: str = Depends(get_workspace_id),
    service: FormSubmissionService = Depends(get_form_service),
):
    return [to_response(s) for s in service.get_submissions(workspace_id, status)]


@router.post("/{submission_id}/complete", response_model=FormSubmissionResponse)
async def complete_form_submission(
    submission_id: str,
    workspace_id: str = Depends(get_workspace_id),
    service: FormSubmissionService = Depends(get_form_service),
):
    """Mark the form filled in; pending reminders for it are cancelled"""
    return to_response(service.complete_submission(workspace_id, submission_id))
