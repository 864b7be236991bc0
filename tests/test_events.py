"""Tests for websocket event parsing."""
import json
import uuid

import pytest

from crm_chat.chat.events import (
    CloseChat,
    FetchChatHistory,
    SendMessage,
    StartChat,
    Typing,
    error_event,
    outbound,
    parse_event,
)
from crm_chat.core.errors import ValidationError

CHAT_ID = str(uuid.uuid4())


def test_parse_start_chat():
    customer_id = str(uuid.uuid4())
    event = parse_event(json.dumps({"type": "start_chat", "customerId": customer_id}))
    assert isinstance(event, StartChat)
    assert str(event.customer_id) == customer_id


def test_parse_message_strips_content():
    event = parse_event({"type": "message", "chatId": CHAT_ID, "content": "  Hello  "})
    assert isinstance(event, SendMessage)
    assert event.content == "Hello"
    assert str(event.chat_id) == CHAT_ID


@pytest.mark.parametrize("event_type,cls", [
    ("fetch_chat_history", FetchChatHistory),
    ("close_chat", CloseChat),
    ("typing_start", Typing),
    ("typing_stop", Typing),
])
def test_parse_chat_id_events(event_type, cls):
    event = parse_event({"type": event_type, "chatId": CHAT_ID})
    assert isinstance(event, cls)
    assert event.type == event_type


def test_snake_case_field_names_are_accepted():
    event = parse_event({"type": "close_chat", "chat_id": CHAT_ID})
    assert str(event.chat_id) == CHAT_ID


def test_empty_message_content_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_event({"type": "message", "chatId": CHAT_ID, "content": "   "})
    assert exc_info.value.details


def test_missing_field_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_event({"type": "message", "content": "Hello"})
    locs = [detail["loc"] for detail in exc_info.value.details]
    assert any("chatId" in loc for loc in locs)


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_event({"type": "delete_everything"})


def test_invalid_uuid_is_rejected():
    with pytest.raises(ValidationError):
        parse_event({"type": "close_chat", "chatId": "S1"})


def test_invalid_json_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_event("{not json")
    assert exc_info.value.message == "Invalid JSON format"


def test_parse_bytes_frame():
    event = parse_event(json.dumps({"type": "close_chat", "chatId": CHAT_ID}).encode())
    assert isinstance(event, CloseChat)


def test_undecodable_bytes_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_event(b"\x80\x81{")
    assert exc_info.value.message == "Invalid JSON format"


def test_non_object_frame_is_rejected():
    with pytest.raises(ValidationError):
        parse_event("[1, 2, 3]")


def test_error_event_shape():
    assert error_event("boom") == {"type": "error", "message": "boom"}
    assert error_event("boom", details={"x": 1}) == {"type": "error", "message": "boom", "details": {"x": 1}}
    assert outbound("chat_closed", chatId=CHAT_ID) == {"type": "chat_closed", "chatId": CHAT_ID}
