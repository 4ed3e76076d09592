"""
Database models for the ServiceHub platform.

Statuses are stored as plain strings; the enums below are the allowed values.
"""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base
from .shared.time import utcnow


def generate_id() -> str:
    return str(uuid.uuid4())


class WorkspaceRole(str, Enum):
    OWNER = "OWNER"
    STAFF = "STAFF"


class Channel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class MessageSender(str, Enum):
    STAFF = "STAFF"
    CONTACT = "CONTACT"
    SYSTEM = "SYSTEM"


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


class FormSubmissionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class IntegrationLogStatus(str, Enum):
    PENDING = "PENDING"
    RETRYING = "RETRYING"
    SENT = "SENT"
    FAILED = "FAILED"


class AlertType(str, Enum):
    INVENTORY_LOW = "INVENTORY_LOW"
    FORM_OVERDUE = "FORM_OVERDUE"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    timezone = Column(String(64), default="UTC", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    members = relationship("WorkspaceUser", back_populates="workspace", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class WorkspaceUser(Base):
    __tablename__ = "workspace_users"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_user"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), default=WorkspaceRole.STAFF.value, nullable=False)

    workspace = relationship("Workspace", back_populates="members")
    user = relationship("User")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    conversations = relationship("Conversation", back_populates="contact", cascade="all, delete-orphan")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    contact = relationship("Contact", back_populates="conversations")
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan", order_by="Message.created_at"
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(String(10), nullable=False)
    sender = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")


class BookingType(Base):
    __tablename__ = "booking_types"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    forms = relationship("Form", back_populates="booking_type")


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_type_id = Column(String(36), ForeignKey("booking_types.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    booking_type = relationship("BookingType", back_populates="forms")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    booking_type_id = Column(String(36), ForeignKey("booking_types.id"), nullable=False)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), default=BookingStatus.CONFIRMED.value, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    contact = relationship("Contact")
    booking_type = relationship("BookingType")
    form_submissions = relationship("FormSubmission", back_populates="booking", cascade="all, delete-orphan")
    inventory_items = relationship("BookingInventory", back_populates="booking", cascade="all, delete-orphan")


class FormSubmission(Base):
    __tablename__ = "form_submissions"
    __table_args__ = (UniqueConstraint("booking_id", "form_id", name="uq_form_submission_booking_form"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default=FormSubmissionStatus.PENDING.value, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    booking = relationship("Booking", back_populates="form_submissions")
    form = relationship("Form")


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    threshold = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class InventoryLog(Base):
    """Track every quantity change of an inventory item"""

    __tablename__ = "inventory_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    item_id = Column(String(36), ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True)
    change = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class BookingInventory(Base):
    __tablename__ = "booking_inventory"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(36), ForeignKey("inventory_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="inventory_items")
    item = relationship("InventoryItem")


class Integration(Base):
    """Per-workspace outbound channel provider with encrypted credentials"""

    __tablename__ = "integrations"
    __table_args__ = (UniqueConstraint("workspace_id", "type", name="uq_integration_workspace_type"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(10), nullable=False)  # EMAIL or SMS
    provider = Column(String(50), nullable=False)  # resend, smtp, twilio, mock

    # Fernet-encrypted JSON (api keys, account sid, from number...)
    config = Column(Text, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class IntegrationLog(Base):
    """Track outbound sends - audit trail and idempotency substrate"""

    __tablename__ = "integration_logs"
    __table_args__ = (
        Index("ix_integration_logs_dedup", "workspace_id", "message_type", "recipient", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    integration_id = Column(String(36), ForeignKey("integrations.id", ondelete="SET NULL"), nullable=True)

    # Message details
    channel = Column(String(10), nullable=False)
    provider = Column(String(50), nullable=False)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(36), nullable=True)

    # Delivery outcome
    status = Column(String(20), default=IntegrationLogStatus.PENDING.value, nullable=False)
    error = Column(Text, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)
    provider_message_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (Index("ix_alerts_subject", "workspace_id", "type", "subject_id", "status"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False)
    subject_id = Column(String(36), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), default=AlertStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)
