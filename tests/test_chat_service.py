"""Tests for ChatSession / ChatService: quota, history, summarization, fallbacks."""

import threading

import pytest

from fitchat.errors import MalformedResponseError, SessionBusyError
from fitchat.i18n import t
from fitchat.models import ChatMessage, ChatMode, Role, WireRole
from fitchat.services.chat_service import ChatService, ChatSession
from fitchat.services.storage import InMemoryStore, KeyValueStore

from conftest import FakeCompletionClient


IMAGE = "data:image/png;base64,iVBORw0KGgo="


def make_session(store=None, client=None, namespace="calendar", language="en"):
    return ChatSession(namespace, store or InMemoryStore(), client or FakeCompletionClient(), language=language)


# ── Initialization ─────────────────────────────────────────────────────────

def test_new_session_defaults():
    session = make_session()
    assert session.usage_count == 0
    assert session.summary == ""
    assert [(m.role, m.content) for m in session.messages] == [(Role.AI, t("greeting", "en"))]


def test_vietnamese_greeting():
    session = make_session(language="vi")
    assert session.messages[0].content.startswith("Xin chào")


def test_reads_persisted_state():
    store = InMemoryStore({"calendar_ai_usage": "5", "calendar_ai_summary": "Likes fish."})
    session = make_session(store)
    assert session.usage_count == 5
    assert session.summary == "Likes fish."


def test_corrupted_counter_defaults_to_zero():
    session = make_session(InMemoryStore({"calendar_ai_usage": "lots"}))
    assert session.usage_count == 0


class BrokenStore(KeyValueStore):
    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("storage disabled")

    def delete(self, key):
        raise OSError("storage disabled")


def test_unavailable_storage_defaults_without_raising():
    session = make_session(BrokenStore())
    assert session.usage_count == 0
    assert session.summary == ""
    # Sends still work; the counter just lives in memory.
    session.send_message("hi")
    assert session.usage_count == 1


def test_surfaces_use_separate_keys():
    store = InMemoryStore()
    make_session(store, namespace="calendar").send_message("hi")
    bubble = make_session(store, namespace="global")
    bubble.send_message("hi")
    bubble.send_message("again")
    assert store.get("calendar_ai_usage") == "1"
    assert store.get("global_ai_usage") == "2"


# ── Sending text ───────────────────────────────────────────────────────────

def test_send_message_appends_user_and_formatted_reply():
    client = FakeCompletionClient(["**Eat** more. Sleep more. Walk daily. Drink water."])
    store = InMemoryStore()
    session = make_session(store, client)

    appended = session.send_message("How do I get fit?", ChatMode.ADVICE)

    assert [(m.role, m.content) for m in appended] == [
        (Role.USER, "How do I get fit?"),
        (Role.AI, "Eat more. Sleep more.\nWalk daily. Drink water."),
    ]
    assert session.usage_count == 1
    assert store.get("calendar_ai_usage") == "1"


def test_request_layout_and_history():
    client = FakeCompletionClient()
    session = make_session(client=client)
    session.send_message("first", ChatMode.MENU)

    call = client.calls[0]
    assert call["kind"] == "text"
    assert call["language"] == "en"
    roles = [m.role for m in call["messages"]]
    assert roles == [WireRole.SYSTEM, WireRole.ASSISTANT, WireRole.USER]
    assert "Menu building" in call["messages"][0].content
    assert call["messages"][-1] == ChatMessage.user("first")


def test_history_order_after_several_exchanges():
    client = FakeCompletionClient(["r1", "r2", "r3"])
    session = make_session(client=client)
    for text in ("q1", "q2", "q3"):
        session.send_message(text)

    contents = [m.content for m in session.messages]
    assert contents == [t("greeting", "en"), "q1", "r1", "q2", "r2", "q3", "r3"]


def test_blank_message_is_ignored():
    client = FakeCompletionClient()
    session = make_session(client=client)
    assert session.send_message("   ") == []
    assert client.calls == []
    assert len(session.messages) == 1


# ── Quota ──────────────────────────────────────────────────────────────────

def test_limit_reached_short_circuits():
    client = FakeCompletionClient()
    session = make_session(InMemoryStore({"calendar_ai_usage": "20"}), client)

    appended = session.send_message("one more?")

    assert [(m.role, m.content) for m in appended] == [(Role.AI, t("limit_reached", "en"))]
    assert client.calls == []
    assert session.usage_count == 20


def test_limit_notice_is_localized():
    session = make_session(InMemoryStore({"calendar_ai_usage": "20"}))
    assert session.send_message("?", language="vi")[0].content == t("limit_reached", "vi")


def test_usage_never_exceeds_limit():
    client = FakeCompletionClient(["ok"] * 100)
    store = InMemoryStore()
    session = ChatSession("global", store, client, summary_trigger=10_000)
    counts = []
    for i in range(25):
        session.send_message(f"q{i}")
        counts.append(session.usage_count)

    assert counts == sorted(counts)
    assert counts[-1] == 20
    assert len(client.calls) == 20
    assert store.get("global_ai_usage") == "20"
    assert session.messages[-1].content == t("limit_reached", "en")


# ── Failures ───────────────────────────────────────────────────────────────

def test_failure_keeps_user_message_and_costs_nothing(upstream_down):
    client = FakeCompletionClient([upstream_down])
    session = make_session(client=client)

    appended = session.send_message("hello?")

    assert [(m.role, m.content) for m in appended] == [
        (Role.USER, "hello?"),
        (Role.AI, t("chat_fallback", "en")),
    ]
    assert session.usage_count == 0


def test_malformed_reply_uses_fallback():
    session = make_session(client=FakeCompletionClient([MalformedResponseError("empty")]), language="vi")
    appended = session.send_message("alo")
    assert appended[-1].content == t("chat_fallback", "vi")


def test_busy_session_rejects_second_send():
    started = threading.Event()
    release = threading.Event()

    class SlowClient(FakeCompletionClient):
        def complete(self, messages, model=None, language=None):
            started.set()
            release.wait(5)
            return "done"

    session = make_session(client=SlowClient())
    worker = threading.Thread(target=session.send_message, args=("first",))
    worker.start()
    assert started.wait(5)
    try:
        with pytest.raises(SessionBusyError):
            session.send_message("second")
    finally:
        release.set()
        worker.join(5)
    assert [m.content for m in session.messages][-2:] == ["first", "done"]


# ── Summarization ──────────────────────────────────────────────────────────

def _session_with_history(store, client, exchanges):
    """Session whose conversation holds the greeting plus the given number of messages."""
    session = ChatSession("calendar", store, client)
    for i in range(exchanges):
        if i % 2 == 0:
            session.conversation.add_user(f"q{i}")
        else:
            session.conversation.add_ai(f"a{i}")
    return session


def test_no_summary_below_trigger():
    client = FakeCompletionClient()
    session = _session_with_history(InMemoryStore(), client, 6)  # 7 stored messages
    session.send_message("next")
    assert len(client.calls) == 1
    assert session.summary == ""


def test_summary_runs_before_main_call_at_trigger():
    client = FakeCompletionClient(["**User** wants to lose weight.", "Main reply."])
    store = InMemoryStore()
    session = _session_with_history(store, client, 7)  # 8 stored messages
    assert len(session.messages) == 8

    session.send_message("What now?")

    assert len(client.calls) == 2
    summary_call, main_call = client.calls
    assert summary_call["messages"][0] == ChatMessage.system(
        "Summarize the following conversation in one short paragraph."
    )
    assert len(summary_call["messages"]) == 9
    assert session.summary == "User wants to lose weight."
    assert store.get("calendar_ai_summary") == "User wants to lose weight."
    assert main_call["messages"][0] == ChatMessage.system("Conversation summary: User wants to lose weight.")
    # One unit for the summary, one for the reply.
    assert session.usage_count == 2
    assert session.messages[-1].content == "Main reply."


def test_summary_prefix_in_following_requests():
    client = FakeCompletionClient(["Summary one.", "reply", "next reply"])
    session = _session_with_history(InMemoryStore(), client, 7)
    session.send_message("a")
    session.send_message("b")
    # 10 messages now in history -> summarized again before "b"'s reply.
    assert client.calls[2]["messages"][0].content.startswith("Summarize")
    assert client.calls[3]["messages"][0] == ChatMessage.system(
        "Conversation summary: " + session.summary
    )


def test_summary_still_runs_at_last_use():
    client = FakeCompletionClient(["Trains on weekends.", "Final reply."])
    store = InMemoryStore({"calendar_ai_usage": "19"})
    session = _session_with_history(store, client, 7)

    session.send_message("last one")

    assert len(client.calls) == 2
    assert session.summary == "Trains on weekends."
    assert store.get("calendar_ai_summary") == "Trains on weekends."
    assert session.messages[-1].content == "Final reply."
    # The counter saturates at the limit.
    assert session.usage_count == 20
    assert store.get("calendar_ai_usage") == "20"


def test_failed_summary_falls_back_without_cost(upstream_down):
    client = FakeCompletionClient([upstream_down])
    session = _session_with_history(InMemoryStore(), client, 7)
    appended = session.send_message("hm")
    assert appended[-1].content == t("chat_fallback", "en")
    assert session.usage_count == 0
    assert session.summary == ""


# ── Photos ─────────────────────────────────────────────────────────────────

def test_send_photo_success():
    client = FakeCompletionClient(["Pho: 450 kcal. Protein 25 g."])
    session = make_session(client=client, language="vi")

    appended = session.send_photo(IMAGE)

    call = client.calls[0]
    assert call["kind"] == "vision"
    assert call["image"] == IMAGE
    assert call["user_text"] == t("photo_request", "vi")
    assert "calories" in call["messages"][0].content
    assert [(m.role, m.content) for m in appended] == [
        (Role.USER, t("photo_sent", "vi")),
        (Role.AI, "Pho: 450 kcal. Protein 25 g."),
    ]
    assert session.usage_count == 1


def test_send_photo_failure_appends_only_fallback(upstream_down):
    session = make_session(client=FakeCompletionClient([upstream_down]))
    appended = session.send_photo(IMAGE)
    assert [(m.role, m.content) for m in appended] == [(Role.AI, t("photo_fallback", "en"))]
    assert session.usage_count == 0


def test_reject_photo_appends_fallback_without_cost():
    client = FakeCompletionClient()
    session = make_session(client=client)

    appended = session.reject_photo("not an image", language="vi")

    assert [(m.role, m.content) for m in appended] == [(Role.AI, t("photo_fallback", "vi"))]
    assert client.calls == []
    assert session.usage_count == 0


def test_send_photo_at_limit():
    client = FakeCompletionClient()
    session = make_session(InMemoryStore({"calendar_ai_usage": "20"}), client)
    assert session.send_photo(IMAGE)[0].content == t("limit_reached", "en")
    assert client.calls == []


# ── Service ────────────────────────────────────────────────────────────────

def test_service_reuses_sessions_and_rejects_unknown_surface(store, fake_client):
    service = ChatService(store, fake_client)
    assert service.get_session("calendar") is service.get_session("calendar")
    assert service.get_session("calendar") is not service.get_session("global")
    with pytest.raises(ValueError):
        service.get_session("restaurant")


def test_logout_keeps_persisted_state_by_default(store, fake_client):
    service = ChatService(store, fake_client, clear_on_logout=False)
    service.get_session("global").send_message("hi")

    assert service.logout() is False
    assert store.get("global_ai_usage") == "1"
    fresh = service.get_session("global")
    assert fresh.usage_count == 1
    assert len(fresh.messages) == 1


def test_logout_can_clear_persisted_state(store, fake_client):
    store.set("calendar_ai_summary", "old")
    service = ChatService(store, fake_client, clear_on_logout=True)
    service.get_session("global").send_message("hi")

    assert service.logout() is True
    assert store.get("global_ai_usage") is None
    assert store.get("calendar_ai_summary") is None
    assert service.get_session("global").usage_count == 0


def test_logout_clears_surfaces_that_were_never_opened(fake_client):
    reads = []

    class CountingStore(InMemoryStore):
        def get(self, key):
            reads.append(key)
            return super().get(key)

    counting = CountingStore({"calendar_ai_usage": "7", "global_ai_summary": "Vegan."})
    service = ChatService(counting, fake_client, clear_on_logout=True)

    assert service.logout() is True
    assert counting.get("calendar_ai_usage") is None
    assert counting.get("global_ai_summary") is None
    # Clearing deletes the keys directly; nothing is read first.
    assert reads == ["calendar_ai_usage", "global_ai_summary"]
