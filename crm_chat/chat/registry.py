"""Connection registry for the chat relay."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set

from crm_chat.core.security import Subject


logger = logging.getLogger("crm_chat.chat.registry")


class EventSocket(Protocol):
    async def send_json(self, data: Any) -> None: ...


def user_room(subject_id: str) -> str:
    """Private notification room of a subject."""
    return f"user:{subject_id}"


def chat_room(chat_id: Any) -> str:
    """Shared conversation room of a chat session."""
    return f"chat:{chat_id}"


@dataclass
class Connection:
    id: str
    subject: Subject
    websocket: EventSocket
    rooms: Set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Tracks live connections and the rooms each one has joined.

    ``join``, ``leave``, ``evict_room`` and ``unregister`` are the only
    mutators. Rooms exist only while they have members.
    """

    def __init__(self):
        # connection_id -> Connection
        self.connections: Dict[str, Connection] = {}
        # room -> set of connection ids
        self.rooms: Dict[str, Set[str]] = {}

    def register(self, websocket: EventSocket, subject: Subject) -> str:
        """Register an authenticated connection and join its private room."""
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = Connection(
            id=connection_id,
            subject=subject,
            websocket=websocket,
        )
        self.join(connection_id, user_room(subject.id))

        logger.info(
            "Connection registered: connection_id=%s, user_id=%s, user_connections=%d",
            connection_id,
            subject.id,
            self.subject_connection_count(subject.id),
        )
        return connection_id

    def unregister(self, connection_id: str) -> None:
        """Drop a connection from every room it joined."""
        connection = self.connections.pop(connection_id, None)
        if connection is None:
            return

        for room in list(connection.rooms):
            self._discard_member(room, connection_id)

        logger.info(
            "Connection unregistered: connection_id=%s, user_id=%s",
            connection_id,
            connection.subject.id,
        )

    def join(self, connection_id: str, room: str) -> None:
        connection = self.connections.get(connection_id)
        if connection is None:
            return
        connection.rooms.add(room)
        self.rooms.setdefault(room, set()).add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        connection = self.connections.get(connection_id)
        if connection is not None:
            connection.rooms.discard(room)
        self._discard_member(room, connection_id)

    def evict_room(self, room: str) -> List[str]:
        """Remove every member from a room. Returns the evicted connection ids."""
        members = list(self.rooms.pop(room, set()))
        for connection_id in members:
            connection = self.connections.get(connection_id)
            if connection is not None:
                connection.rooms.discard(room)

        if members:
            logger.info("Room evicted: room=%s, connections=%d", room, len(members))
        return members

    def _discard_member(self, room: str, connection_id: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room]

    def members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, set()))

    def rooms_of(self, connection_id: str) -> Set[str]:
        connection = self.connections.get(connection_id)
        return set(connection.rooms) if connection else set()

    def subject_connection_count(self, subject_id: str) -> int:
        """Get number of live connections for a subject."""
        return len(self.rooms.get(user_room(subject_id), set()))

    async def send(self, connection_id: str, event: dict) -> bool:
        """Send an event to one connection. Returns False if it could not be delivered."""
        connection = self.connections.get(connection_id)
        if connection is None:
            return False

        try:
            await connection.websocket.send_json(event)
        except Exception as e:
            logger.warning(
                "Failed to send event to connection %s (user %s): %s",
                connection_id,
                connection.subject.id,
                e,
            )
            self.unregister(connection_id)
            return False
        return True

    async def broadcast(
        self,
        room: str,
        event: dict,
        exclude: Optional[str] = None,
    ) -> int:
        """
        Broadcast an event to every connection in a room.

        Returns:
            Number of connections that received the event
        """
        sent_count = 0
        # Snapshot: failed sends unregister connections mid-iteration
        for connection_id in sorted(self.members(room)):
            if connection_id == exclude:
                continue
            if await self.send(connection_id, event):
                sent_count += 1
        return sent_count

    async def send_to_subject(self, subject_id: str, event: dict) -> int:
        """Send an event to every connection of a subject."""
        return await self.broadcast(user_room(subject_id), event)


# Global registry instance
connection_registry = ConnectionRegistry()
