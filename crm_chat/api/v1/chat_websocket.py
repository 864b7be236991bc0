"""WebSocket endpoint for the real-time chat relay."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from crm_chat.chat import ChatRelay, connection_registry
from crm_chat.core.database import SessionLocal
from crm_chat.core.errors import AuthError
from crm_chat.core.messages import AUTH_SUBJECT_MISMATCH
from crm_chat.core.security import Subject, subject_uuid, verify_token


logger = logging.getLogger("crm_chat.chat.websocket")

router = APIRouter()

relay = ChatRelay(connection_registry, SessionLocal)


def _bearer_token(websocket: WebSocket) -> Optional[str]:
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def authenticate_websocket(
    websocket: WebSocket,
    token: Optional[str],
    user_id: Optional[str],
) -> Subject:
    """Verify the handshake credential. Raises AuthError when it must be refused."""
    subject = verify_token(token or _bearer_token(websocket))
    subject_uuid(subject)

    if user_id and user_id != subject.id:
        raise AuthError(AUTH_SUBJECT_MISMATCH)

    return subject


@router.websocket("/ws/chat")
async def chat_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
):
    """
    WebSocket endpoint for the chat relay.

    Connection URL: ws://localhost:8000/api/v1/ws/chat?token={access_token}

    Frames are JSON objects tagged by "type".

    Client -> Server:
        start_chat {customerId}, message {chatId, content},
        fetch_chat_history {chatId}, close_chat {chatId},
        typing_start / typing_stop {chatId}

    Server -> Client:
        connected, chat_started, message, chat_history, chat_closed,
        typing_start, typing_stop, error {message, details?}
    """
    try:
        subject = authenticate_websocket(websocket, token, user_id)
    except AuthError as e:
        logger.warning("WebSocket authentication failed: %s", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    connection_id = await relay.connect(websocket, subject)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            # Binary frames carry JSON too
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            await relay.handle(connection_id, data)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: connection_id=%s, user_id=%s", connection_id, subject.id)
    finally:
        relay.disconnect(connection_id)
