"""Conversation repository - Database operations for conversations and messages"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Conversation, Message


class ConversationRepository:
    @staticmethod
    def get_conversation(db: Session, workspace_id: str, conversation_id: str) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.id == conversation_id, Conversation.workspace_id == workspace_id)
            .first()
        )

    @staticmethod
    def get_or_create_conversation(db: Session, workspace_id: str, contact_id: str) -> Conversation:
        """Most recent conversation with the contact, or a new one (not committed)"""
        conversation = (
            db.query(Conversation)
            .filter(Conversation.workspace_id == workspace_id, Conversation.contact_id == contact_id)
            .order_by(Conversation.created_at.desc())
            .first()
        )
        if conversation:
            return conversation

        conversation = Conversation(workspace_id=workspace_id, contact_id=contact_id)
        db.add(conversation)
        db.flush()
        return conversation

    @staticmethod
    def create_message(db: Session, conversation: Conversation, channel: str, sender: str, content: str) -> Message:
        message = Message(conversation_id=conversation.id, channel=channel, sender=sender, content=content)
        db.add(message)
        db.commit()
        db.refresh(message)
        return message
