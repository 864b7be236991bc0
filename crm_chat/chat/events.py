"""Websocket event envelopes.

Every frame is a JSON object tagged by ``type``. Inbound frames are parsed
into one of the :data:`InboundEvent` variants before dispatch, so handlers
never see a missing or malformed field.
"""

import json
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from crm_chat.core.config import settings
from crm_chat.core.errors import ValidationError
from crm_chat.core.messages import CHAT_INVALID_EVENT, CHAT_INVALID_JSON


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StartChat(_Inbound):
    type: Literal["start_chat"]
    customer_id: UUID = Field(alias="customerId")


class SendMessage(_Inbound):
    type: Literal["message"]
    chat_id: UUID = Field(alias="chatId")
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message content is required")
        if len(v) > settings.CHAT_MESSAGE_MAX_LENGTH:
            raise ValueError(
                f"Message content must be at most {settings.CHAT_MESSAGE_MAX_LENGTH} characters"
            )
        return v


class FetchChatHistory(_Inbound):
    type: Literal["fetch_chat_history"]
    chat_id: UUID = Field(alias="chatId")


class CloseChat(_Inbound):
    type: Literal["close_chat"]
    chat_id: UUID = Field(alias="chatId")


class Typing(_Inbound):
    type: Literal["typing_start", "typing_stop"]
    chat_id: UUID = Field(alias="chatId")
    # Informational only; the relay always reports the authenticated subject
    user_id: Optional[str] = Field(default=None, alias="userId")


InboundEvent = Annotated[
    Union[StartChat, SendMessage, FetchChatHistory, CloseChat, Typing],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def _error_details(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]


def parse_event(raw: str | bytes | dict) -> InboundEvent:
    """Parse one inbound frame, raising ValidationError when malformed."""
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError(CHAT_INVALID_JSON) from exc
    else:
        data = raw

    if not isinstance(data, dict):
        raise ValidationError(CHAT_INVALID_EVENT, details="Event must be a JSON object")

    try:
        return _inbound_adapter.validate_python(data)
    except PydanticValidationError as exc:
        raise ValidationError(CHAT_INVALID_EVENT, details=_error_details(exc)) from exc


def outbound(event_type: str, **payload: Any) -> dict[str, Any]:
    """Build a server-to-client frame."""
    return {"type": event_type, **payload}


def error_event(message: str, details: Any = None) -> dict[str, Any]:
    if details is None:
        return outbound("error", message=message)
    return outbound("error", message=message, details=details)
