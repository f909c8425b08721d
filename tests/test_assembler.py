"""Tests for roles, the conversation store and request assembly."""

import pytest

from config import get_mode_instruction
from fitchat.models import ChatMessage, ChatMode, DisplayMessage, Role, WireRole, to_wire_role
from fitchat.services.assembler import (
    build_chat_request,
    build_summary_request,
    build_vision_request,
    summary_message,
)
from fitchat.services.conversation import ConversationStore


def test_role_mapping():
    assert to_wire_role(Role.AI) == WireRole.ASSISTANT
    assert to_wire_role(Role.USER) == WireRole.USER
    assert to_wire_role("ai") == WireRole.ASSISTANT


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        to_wire_role("system")


def test_conversation_starts_with_greeting_and_keeps_order():
    store = ConversationStore("Hello!")
    store.add_user("q1")
    store.add_ai("a1")
    store.add_user("q2")

    assert [(m.role, m.content) for m in store] == [
        (Role.AI, "Hello!"),
        (Role.USER, "q1"),
        (Role.AI, "a1"),
        (Role.USER, "q2"),
    ]
    history = store.to_request_history()
    assert [m.role for m in history] == [WireRole.ASSISTANT, WireRole.USER, WireRole.ASSISTANT, WireRole.USER]
    assert [m.content for m in history] == ["Hello!", "q1", "a1", "q2"]


def test_conversation_messages_is_a_copy():
    store = ConversationStore("Hello!")
    store.messages.clear()
    assert len(store) == 1


def test_display_messages_are_immutable():
    message = DisplayMessage(role=Role.USER, content="hi")
    with pytest.raises(Exception):
        message.content = "changed"


def _history():
    return [ChatMessage(role=WireRole.ASSISTANT, content="Hello!"), ChatMessage.user("I want to bulk")]


def test_chat_request_without_summary():
    messages = build_chat_request("", ChatMode.MENU, _history(), "Plan my week", "en")

    assert messages[0] == ChatMessage.system(get_mode_instruction("menu", "en"))
    assert messages[1:3] == _history()
    assert messages[-1] == ChatMessage.user("Plan my week")
    assert len(messages) == 4


def test_chat_request_with_summary_prefix():
    messages = build_chat_request("Vegetarian, 70 kg.", ChatMode.ADVICE, _history(), "Tips?", "en")
    assert messages[0] == ChatMessage.system("Conversation summary: Vegetarian, 70 kg.")
    assert messages[1] == ChatMessage.system(get_mode_instruction("advice", "en"))


def test_vietnamese_summary_prefix():
    assert summary_message("Ăn chay.", "vi") == ChatMessage.system("Tóm tắt hội thoại: Ăn chay.")
    assert summary_message("", "vi") is None


def test_mode_instructions_differ_by_language_and_mode():
    texts = {get_mode_instruction(mode, lang) for mode in ChatMode for lang in ("en", "vi")}
    assert len(texts) == 6
    assert "7-day menu" in get_mode_instruction(ChatMode.MENU, "en")
    assert get_mode_instruction("unknown", "en") == ""


def test_vision_request_uses_calorie_instruction_and_no_user_turn():
    messages = build_vision_request("", _history(), "vi")
    assert messages[0] == ChatMessage.system(get_mode_instruction("calories", "vi"))
    assert messages[1:] == _history()


def test_summary_request():
    messages = build_summary_request(_history(), "en")
    assert messages[0] == ChatMessage.system("Summarize the following conversation in one short paragraph.")
    assert messages[1:] == _history()


def test_image_turn_wire_shape():
    wire = ChatMessage.user_with_image("What is this?", "data:image/png;base64,AAAA").to_wire()
    assert wire == {
        "role": "user",
        "content": [
            {"type": "text", "text": "What is this?"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        ],
    }
