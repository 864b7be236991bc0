"""Message handling for chat system."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_chat.core.errors import PersistenceError
from crm_chat.core.messages import CHAT_NOT_FOUND_OR_ACCESS_DENIED, DB_OPERATION_FAILED
from crm_chat.models.chat import ChatMessage, ChatSession
from .sessions import ChatSessionManager


logger = logging.getLogger("crm_chat.chat.messages")


class MessageHandler:
    """Handles message creation and retrieval."""

    @staticmethod
    def create_message(
        db: Session,
        chat_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
    ) -> ChatMessage:
        """Persist a message and touch its session's updated_at.

        Only the session's existence is checked; the sender does not have to be
        the session's agent.
        """
        chat_session = ChatSessionManager.require_session(
            db, chat_id, message=CHAT_NOT_FOUND_OR_ACCESS_DENIED
        )

        try:
            # Best effort per-session counter, no lock: only the order of one
            # sender's messages is guaranteed
            last_sequence = (
                db.query(func.max(ChatMessage.sequence_number))
                .filter(ChatMessage.chat_id == chat_id)
                .scalar()
            )

            message = ChatMessage(
                chat_id=chat_id,
                sender_id=sender_id,
                content=content,
                sequence_number=(last_sequence or 0) + 1,
            )
            db.add(message)
            db.flush()

            chat_session.updated_at = datetime.now(timezone.utc)
            db.add(chat_session)

            db.commit()
            db.refresh(message)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Message insert failed: chat_id=%s, error=%s", chat_id, exc)
            raise PersistenceError(DB_OPERATION_FAILED, details=str(exc.__class__.__name__)) from exc

        logger.info(
            "Message created: message_id=%s, chat_id=%s, sender_id=%s",
            message.id,
            chat_id,
            sender_id,
        )

        return message

    @staticmethod
    def get_history(db: Session, chat_id: uuid.UUID) -> List[ChatMessage]:
        """Get all messages for a session, oldest first."""
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.created_at, ChatMessage.sequence_number)
            .all()
        )
