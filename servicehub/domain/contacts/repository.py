"""Contact repository - Database operations for contacts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contact


class ContactRepository:
    """Repository for contact database operations"""

    @staticmethod
    def get_contacts(db: Session, workspace_id: str) -> list[Contact]:
        return db.query(Contact).filter(Contact.workspace_id == workspace_id).order_by(Contact.created_at.desc()).all()

    @staticmethod
    def get_contact_by_id(db: Session, workspace_id: str, contact_id: str) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id, Contact.workspace_id == workspace_id).first()

    @staticmethod
    def find_contact(
        db: Session, workspace_id: str, email: Optional[str] = None, phone: Optional[str] = None
    ) -> Optional[Contact]:
        """Match by email first, then phone"""
        if email:
            contact = db.query(Contact).filter(Contact.workspace_id == workspace_id, Contact.email == email).first()
            if contact:
                return contact
        if phone:
            return db.query(Contact).filter(Contact.workspace_id == workspace_id, Contact.phone == phone).first()
        return None

    @staticmethod
    def create_contact(db: Session, workspace_id: str, **contact_data) -> Contact:
        contact = Contact(workspace_id=workspace_id, **contact_data)
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact
