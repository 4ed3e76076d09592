"""Contact service - Business logic for contact operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...automation import AutomationContext
from ...events import Events
from ...models import Contact
from .repository import ContactRepository
from .schemas import ContactCreate

logger = logging.getLogger(__name__)


def contact_snapshot(contact: Contact) -> dict:
    return {"id": contact.id, "name": contact.name, "email": contact.email, "phone": contact.phone}


class ContactService:
    """Service layer for contact business logic"""

    def __init__(self, db: Session, automation: AutomationContext):
        self.db = db
        self.automation = automation
        self.repo = ContactRepository()

    def get_contacts(self, workspace_id: str) -> list[Contact]:
        return self.repo.get_contacts(self.db, workspace_id)

    def get_contact(self, workspace_id: str, contact_id: str) -> Contact:
        contact = self.repo.get_contact_by_id(self.db, workspace_id, contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        return contact

    def create_contact(self, workspace_id: str, data: ContactCreate) -> Contact:
        """Create a contact and announce it (welcome message automation)"""
        if self.repo.find_contact(self.db, workspace_id, email=data.email, phone=data.phone):
            raise HTTPException(status_code=409, detail="A contact with this email or phone already exists")

        contact = self.repo.create_contact(self.db, workspace_id, name=data.name, email=data.email, phone=data.phone)
        logger.info(f"✅ Contact {contact.id} created in workspace {workspace_id}")
        self._announce(workspace_id, contact)
        return contact

    def find_or_create_contact(
        self, workspace_id: str, name: str, email: Optional[str], phone: Optional[str]
    ) -> tuple[Contact, bool]:
        """Returns (contact, created)"""
        contact = self.repo.find_contact(self.db, workspace_id, email=email, phone=phone)
        if contact:
            return contact, False

        contact = self.repo.create_contact(self.db, workspace_id, name=name, email=email, phone=phone)
        logger.info(f"✅ Contact {contact.id} created from public booking in workspace {workspace_id}")
        self._announce(workspace_id, contact)
        return contact, True

    def _announce(self, workspace_id: str, contact: Contact) -> None:
        self.automation.bus.emit(
            Events.CONTACT_CREATED,
            {"workspace_id": workspace_id, "contact_id": contact.id, "contact": contact_snapshot(contact)},
        )
