"""Chat session management."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_chat.core.errors import NotFoundError, PersistenceError, ValidationError
from crm_chat.core.messages import (
    CHAT_ALREADY_CLOSED,
    CHAT_NOT_FOUND,
    CUSTOMER_NOT_FOUND,
    DB_OPERATION_FAILED,
)
from crm_chat.models.chat import ChatSession, ChatStatus
from crm_chat.models.customer import Customer


logger = logging.getLogger("crm_chat.chat.sessions")


class ChatSessionManager:
    """Manages chat session lifecycle."""

    @staticmethod
    def start_chat(
        db: Session,
        customer_id: uuid.UUID,
        agent_id: uuid.UUID,
    ) -> ChatSession:
        """Create a new active session between an agent and a customer.

        A new row is inserted on every call, even when the same agent already
        has an active session with this customer.
        """
        customer = db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError(CUSTOMER_NOT_FOUND)

        chat_session = ChatSession(
            customer_id=customer.id,
            agent_id=agent_id,
            status=ChatStatus.ACTIVE,
        )

        try:
            db.add(chat_session)
            db.commit()
            db.refresh(chat_session)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Chat session insert failed: customer_id=%s, error=%s", customer_id, exc)
            raise PersistenceError(DB_OPERATION_FAILED, details=str(exc.__class__.__name__)) from exc

        logger.info(
            "Chat session created: chat_id=%s, customer_id=%s, agent_id=%s",
            chat_session.id,
            customer_id,
            agent_id,
        )

        return chat_session

    @staticmethod
    def get_session(db: Session, chat_id: uuid.UUID) -> Optional[ChatSession]:
        """Get a chat session by ID."""
        return db.query(ChatSession).filter(ChatSession.id == chat_id).first()

    @staticmethod
    def require_session(
        db: Session,
        chat_id: uuid.UUID,
        message: str = CHAT_NOT_FOUND,
    ) -> ChatSession:
        chat_session = ChatSessionManager.get_session(db, chat_id)
        if not chat_session:
            raise NotFoundError(message)
        return chat_session

    @staticmethod
    def list_sessions(
        db: Session,
        status: Optional[str] = None,
        agent_id: Optional[uuid.UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ChatSession]:
        """List chat sessions, newest first."""
        query = db.query(ChatSession)

        if status:
            query = query.filter(ChatSession.status == status)

        if agent_id:
            query = query.filter(ChatSession.agent_id == agent_id)

        return query.order_by(desc(ChatSession.created_at)).limit(limit).offset(offset).all()

    @staticmethod
    def close_chat(db: Session, chat_id: uuid.UUID) -> ChatSession:
        """Mark a session closed. Closed is terminal."""
        chat_session = ChatSessionManager.require_session(db, chat_id)
        if chat_session.status == ChatStatus.CLOSED:
            raise ValidationError(CHAT_ALREADY_CLOSED)

        chat_session.status = ChatStatus.CLOSED
        chat_session.updated_at = datetime.now(timezone.utc)

        try:
            db.add(chat_session)
            db.commit()
            db.refresh(chat_session)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Chat session close failed: chat_id=%s, error=%s", chat_id, exc)
            raise PersistenceError(DB_OPERATION_FAILED, details=str(exc.__class__.__name__)) from exc

        logger.info("Chat session closed: chat_id=%s", chat_id)
        return chat_session
