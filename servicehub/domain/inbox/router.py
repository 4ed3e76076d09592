"""Inbox router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...database import get_db
from ...dependencies import get_automation, get_workspace_id
from .schemas import MessageResponse, ReplyCreate, StaffReplyResponse
from .service import InboxService

router = APIRouter(prefix="/conversations", tags=["Inbox"])


def get_inbox_service(
    db: Session = Depends(get_db), automation: AutomationContext = Depends(get_automation)
) -> InboxService:
    return InboxService(db, automation)


@router.post("/{conversation_id}/replies", response_model=StaffReplyResponse, status_code=201)
async def send_staff_reply(
    conversation_id: str,
    data: ReplyCreate,
    workspace_id: str = Depends(get_workspace_id),
    service: InboxService = Depends(get_inbox_service),
):
    """Staff reply; cancels scheduled automation for this conversation"""
    message, cancelled = await service.send_staff_reply(workspace_id, conversation_id, data)
    return StaffReplyResponse(message=MessageResponse.model_validate(message), cancelledJobs=cancelled)


@router.post("/{conversation_id}/contact-replies", response_model=MessageResponse, status_code=201)
async def record_contact_reply(
    conversation_id: str,
    data: ReplyCreate,
    workspace_id: str = Depends(get_workspace_id),
    service: InboxService = Depends(get_inbox_service),
):
    """Inbound message from the contact (e.g. forwarded by a provider webhook)"""
    return service.record_contact_reply(workspace_id, conversation_id, data)
