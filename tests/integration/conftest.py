from datetime import timedelta

import pytest
import pytest_asyncio

from servicehub.domain.bookings.schemas import BookingCreate
from servicehub.domain.bookings.service import BookingService
from servicehub.domain.contacts.schemas import ContactCreate
from servicehub.domain.contacts.service import ContactService
from servicehub.domain.inbox.repository import ConversationRepository
from servicehub.shared.time import utcnow


@pytest_asyncio.fixture
async def contact(db, workspace, automation):
    contact = ContactService(db, automation).create_contact(
        workspace.id, ContactCreate(name="Ada Lovelace", email="ada@example.com")
    )
    await automation.bus.drain()
    return contact


@pytest.fixture
def conversation(db, workspace, contact):
    conversation = ConversationRepository.get_or_create_conversation(db, workspace.id, contact.id)
    db.commit()
    return conversation


@pytest.fixture
def book(db, workspace, booking_type, contact, conversation, automation):
    async def _book(hours_ahead: float = 48, with_conversation: bool = True):
        data = BookingCreate(
            contactId=contact.id,
            bookingTypeId=booking_type.id,
            scheduledAt=utcnow() + timedelta(hours=hours_ahead),
            conversationId=conversation.id if with_conversation else None,
        )
        return await BookingService(db, automation).create_booking(workspace.id, data)

    return _book


@pytest.fixture
def fetch(session_factory):
    """Query through a fresh session so the result reflects what other sessions committed"""

    def _fetch(model, **filters):
        session = session_factory()
        try:
            return session.query(model).filter_by(**filters).all()
        finally:
            session.close()

    return _fetch
