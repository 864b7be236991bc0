"""Real-time chat relay between agents and customers."""

from crm_chat.models.chat import ChatMessage, ChatSession, ChatStatus
from .sessions import ChatSessionManager
from .messages import MessageHandler
from .registry import ConnectionRegistry, chat_room, connection_registry, user_room
from .relay import ChatRelay

__all__ = [
    "ChatSession",
    "ChatMessage",
    "ChatStatus",
    "ChatSessionManager",
    "MessageHandler",
    "ConnectionRegistry",
    "connection_registry",
    "chat_room",
    "user_room",
    "ChatRelay",
]
