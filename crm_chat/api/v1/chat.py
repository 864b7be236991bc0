"""HTTP endpoints for chat sessions and their messages."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from crm_chat.api.dependencies import get_current_subject
from crm_chat.api.schemas import ChatSessionCreate
from crm_chat.chat import ChatSessionManager, MessageHandler, connection_registry
from crm_chat.chat.events import outbound
from crm_chat.chat.schemas import ChatMessageRead, ChatSessionRead, session_payload
from crm_chat.core.database import get_db
from crm_chat.core.errors import PermissionDeniedError
from crm_chat.core.messages import CHAT_ACCESS_DENIED
from crm_chat.core.permissions import Role
from crm_chat.core.security import Subject


logger = logging.getLogger("crm_chat.api.chat")

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=ChatSessionRead)
async def create_session(
    payload: ChatSessionCreate,
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    """
    Queue a chat session for the caller and notify the caller's open connections.

    Each live connection of the subject receives ``chat_queued`` with the
    session payload; the session is not joined to any chat room.
    """

    def start() -> dict:
        chat_session = ChatSessionManager.start_chat(
            db,
            customer_id=payload.customer_id,
            agent_id=uuid.UUID(subject.id),
        )
        return session_payload(chat_session)

    session = await run_in_threadpool(start)
    notified = await connection_registry.send_to_subject(
        subject.id, outbound("chat_queued", **session)
    )
    logger.info("Chat queued: chat_id=%s, user_id=%s, connections=%d", session["id"], subject.id, notified)
    return session


@router.get("/sessions", response_model=list[ChatSessionRead])
def list_sessions(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    """List chat sessions; non-admins only see sessions they are the agent of."""
    agent_id = None if subject.role == Role.ADMIN else uuid.UUID(subject.id)
    return ChatSessionManager.list_sessions(
        db,
        status=status_filter,
        agent_id=agent_id,
        limit=limit,
        offset=offset,
    )


@router.get("/sessions/{chat_id}/messages", response_model=list[ChatMessageRead])
def get_session_messages(
    chat_id: uuid.UUID,
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    chat_session = ChatSessionManager.require_session(db, chat_id)

    if subject.role != Role.ADMIN and str(chat_session.agent_id) != subject.id:
        raise PermissionDeniedError(CHAT_ACCESS_DENIED)

    return MessageHandler.get_history(db, chat_id)
