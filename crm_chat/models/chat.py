"""Chat session and message models."""

import uuid

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import TimestampedUUIDModel
from .customer import Customer
from .user import User


class ChatStatus:
    ACTIVE = "active"
    CLOSED = "closed"


class ChatSession(TimestampedUUIDModel):
    """One agent-customer conversation thread."""

    __tablename__ = "chat_sessions"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    # Fixed to the initiating agent; never reassigned
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ChatStatus.ACTIVE)

    customer: Mapped[Customer] = relationship(lazy="joined")


class ChatMessage(TimestampedUUIDModel):
    """Immutable message in a chat session."""

    __tablename__ = "chat_messages"
    # Not unique: concurrent senders may share a number
    __table_args__ = (Index("ix_chat_messages_chat_sequence", "chat_id", "sequence_number"),)

    chat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Order within the session, tie-breaker for equal created_at
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    sender: Mapped[User] = relationship(lazy="joined")
