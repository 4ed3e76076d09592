"""Inbox service - staff and contact replies"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...events import Events
from ...models import Conversation, Message, MessageSender
from .repository import ConversationRepository
from .schemas import ReplyCreate

logger = logging.getLogger(__name__)


def message_snapshot(message: Message) -> dict:
    return {
        "id": message.id,
        "channel": message.channel,
        "sender": message.sender,
        "content": message.content,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


class InboxService:
    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation
        self.repo = ConversationRepository()

    def _get_conversation(self, workspace_id: str, conversation_id: str) -> Conversation:
        conversation = self.repo.get_conversation(self.db, workspace_id, conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    async def send_staff_reply(self, workspace_id: str, conversation_id: str, data: ReplyCreate) -> tuple[Message, int]:
        """
        Record a staff reply. A human response supersedes automated follow-up,
        so every pending job correlated to the conversation is cancelled.

        Returns (message, cancelled_job_count).
        """
        conversation = self._get_conversation(workspace_id, conversation_id)
        message = self.repo.create_message(self.db, conversation, data.channel, MessageSender.STAFF.value, data.content)

        self.automation.bus.emit(
            Events.STAFF_REPLIED,
            {
                "workspace_id": workspace_id,
                "conversation_id": conversation.id,
                "message_id": message.id,
                "message": message_snapshot(message),
            },
        )
        cancelled = await self.automation.scheduler.cancel_scheduled_jobs_by_conversation(conversation.id)
        logger.info(f"💬 Staff replied in conversation {conversation.id} ({cancelled} job(s) cancelled)")
        return message, cancelled

    def record_contact_reply(self, workspace_id: str, conversation_id: str, data: ReplyCreate) -> Message:
        conversation = self._get_conversation(workspace_id, conversation_id)
        message = self.repo.create_message(
            self.db, conversation, data.channel, MessageSender.CONTACT.value, data.content
        )

        self.automation.bus.emit(
            Events.CONTACT_REPLIED,
            {
                "workspace_id": workspace_id,
                "conversation_id": conversation.id,
                "message_id": message.id,
                "message": message_snapshot(message),
            },
        )
        return message
