"""Chat relay: event dispatch, persistence and room fan-out.

Each inbound frame is parsed into a typed event, routed by its ``type`` to a
handler, and the handler's effects are applied to the connection registry.
Handlers do their persistence work and return effects instead of touching
sockets, which keeps them testable without a live connection.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from crm_chat.core.errors import CRMError, PersistenceError
from crm_chat.core.messages import (
    CHAT_CLOSE_FAILED,
    CHAT_HISTORY_FAILED,
    CHAT_SEND_FAILED,
    CHAT_START_FAILED,
    DB_OPERATION_FAILED,
    ERROR_INTERNAL_SERVER,
)
from crm_chat.core.security import Subject
from .events import (
    CloseChat,
    FetchChatHistory,
    InboundEvent,
    SendMessage,
    StartChat,
    Typing,
    error_event,
    outbound,
    parse_event,
)
from .messages import MessageHandler
from .registry import Connection, ConnectionRegistry, EventSocket, chat_room
from .schemas import message_payload, session_payload
from .sessions import ChatSessionManager


logger = logging.getLogger("crm_chat.chat.relay")


@dataclass(frozen=True)
class Reply:
    """Send an event to the connection that triggered the handler."""

    event: dict


@dataclass(frozen=True)
class Broadcast:
    """Send an event to every member of a room."""

    room: str
    event: dict
    exclude_sender: bool = False


@dataclass(frozen=True)
class Join:
    room: str


@dataclass(frozen=True)
class EvictRoom:
    room: str


Effect = Union[Reply, Broadcast, Join, EvictRoom]

_FAILURE_PREFIXES = {
    "start_chat": CHAT_START_FAILED,
    "message": CHAT_SEND_FAILED,
    "fetch_chat_history": CHAT_HISTORY_FAILED,
    "close_chat": CHAT_CLOSE_FAILED,
}


class ChatRelay:
    """Routes websocket events for all connections of one relay process."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        session_factory: Callable[[], Session],
    ):
        self.registry = registry
        self.session_factory = session_factory
        self._handlers: Dict[str, Callable[[Connection, Any], List[Effect]]] = {
            "start_chat": self.start_chat,
            "message": self.send_message,
            "fetch_chat_history": self.fetch_history,
            "close_chat": self.close_chat,
            "typing_start": self.typing,
            "typing_stop": self.typing,
        }

    async def connect(self, websocket: EventSocket, subject: Subject) -> str:
        """Register an authenticated connection and greet it."""
        connection_id = self.registry.register(websocket, subject)
        await self.registry.send(
            connection_id,
            outbound("connected", userId=subject.id, connectionId=connection_id),
        )
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self.registry.unregister(connection_id)

    async def handle(self, connection_id: str, raw: Union[str, bytes, dict]) -> List[Effect]:
        """Process one inbound frame. Never raises for handler failures."""
        connection = self.registry.connections.get(connection_id)
        if connection is None:
            return []

        event_type = None
        try:
            event = parse_event(raw)
            event_type = event.type
            effects = await self.dispatch(connection, event)
        except CRMError as exc:
            effects = [Reply(self._error_event(event_type, exc))]
            logger.warning(
                "Chat event failed: connection_id=%s, type=%s, error=%s",
                connection_id,
                event_type,
                exc.message,
            )
        except SQLAlchemyError as exc:
            wrapped = PersistenceError(DB_OPERATION_FAILED, details=exc.__class__.__name__)
            effects = [Reply(self._error_event(event_type, wrapped))]
            logger.error(
                "Chat event persistence error: connection_id=%s, type=%s",
                connection_id,
                event_type,
                exc_info=True,
            )
        except Exception:
            effects = [Reply(error_event(ERROR_INTERNAL_SERVER))]
            logger.error(
                "Unexpected chat event error: connection_id=%s, type=%s",
                connection_id,
                event_type,
                exc_info=True,
            )

        await self.apply(connection_id, effects)
        return effects

    async def dispatch(self, connection: Connection, event: InboundEvent) -> List[Effect]:
        handler = self._handlers[event.type]
        if isinstance(event, Typing):
            return handler(connection, event)
        # Store calls block, so they run off the event loop
        return await run_in_threadpool(handler, connection, event)

    async def apply(self, connection_id: str, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Reply):
                await self.registry.send(connection_id, effect.event)
            elif isinstance(effect, Broadcast):
                exclude = connection_id if effect.exclude_sender else None
                await self.registry.broadcast(effect.room, effect.event, exclude=exclude)
            elif isinstance(effect, Join):
                self.registry.join(connection_id, effect.room)
            elif isinstance(effect, EvictRoom):
                self.registry.evict_room(effect.room)

    @staticmethod
    def _error_event(event_type: str | None, exc: CRMError) -> dict:
        prefix = _FAILURE_PREFIXES.get(event_type or "")
        message = f"{prefix}: {exc.message}" if prefix else exc.message
        return error_event(message, exc.details)

    # Handlers

    def start_chat(self, connection: Connection, event: StartChat) -> List[Effect]:
        with self.session_factory() as db:
            chat_session = ChatSessionManager.start_chat(
                db,
                customer_id=event.customer_id,
                agent_id=uuid.UUID(connection.subject.id),
            )
            payload = session_payload(chat_session)

        return [
            Join(chat_room(payload["id"])),
            Reply(outbound("chat_started", **payload)),
        ]

    def send_message(self, connection: Connection, event: SendMessage) -> List[Effect]:
        with self.session_factory() as db:
            message = MessageHandler.create_message(
                db,
                chat_id=event.chat_id,
                sender_id=uuid.UUID(connection.subject.id),
                content=event.content,
            )
            payload = message_payload(message)

        return [Broadcast(chat_room(event.chat_id), outbound("message", **payload))]

    def fetch_history(self, connection: Connection, event: FetchChatHistory) -> List[Effect]:
        with self.session_factory() as db:
            messages = [message_payload(m) for m in MessageHandler.get_history(db, event.chat_id)]

        logger.info("Chat history fetched: chat_id=%s, messages=%d", event.chat_id, len(messages))
        return [Reply(outbound("chat_history", chatId=str(event.chat_id), messages=messages))]

    def close_chat(self, connection: Connection, event: CloseChat) -> List[Effect]:
        with self.session_factory() as db:
            ChatSessionManager.close_chat(db, event.chat_id)

        room = chat_room(event.chat_id)
        return [
            Broadcast(room, outbound("chat_closed", chatId=str(event.chat_id))),
            EvictRoom(room),
        ]

    def typing(self, connection: Connection, event: Typing) -> List[Effect]:
        return [
            Broadcast(
                chat_room(event.chat_id),
                outbound(event.type, chatId=str(event.chat_id), userId=connection.subject.id),
                exclude_sender=True,
            )
        ]
