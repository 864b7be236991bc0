"""Pydantic read models for chat sessions and messages."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class CustomerSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: Optional[str] = None


class SenderSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: Optional[str] = None
    email: str


class ChatSessionRead(BaseModel):
    """Chat session with its customer embedded."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    agent_id: UUID
    status: str
    created_at: datetime
    updated_at: datetime
    customer: Optional[CustomerSnapshot] = None


class ChatMessageRead(BaseModel):
    """Chat message hydrated with its sender."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chat_id: UUID
    sender_id: UUID
    content: str
    sequence_number: int
    created_at: datetime
    sender: Optional[SenderSnapshot] = None


def session_payload(chat_session: Any) -> dict[str, Any]:
    return ChatSessionRead.model_validate(chat_session).model_dump(mode="json")


def message_payload(message: Any) -> dict[str, Any]:
    return ChatMessageRead.model_validate(message).model_dump(mode="json")
