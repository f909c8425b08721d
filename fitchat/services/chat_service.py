"""
CHAT SERVICE MODULE
===================

One ChatSession per chat surface ("calendar" tab chat and "global" floating
bubble). Both run the same pipeline and differ only in the storage namespace
of their persisted state:

  {namespace}_ai_usage    - billable calls made so far (0..USAGE_LIMIT)
  {namespace}_ai_summary  - latest conversation summary ("" = none yet)

SEND FLOW (send_message):
  1. Quota gate: at the limit, append the limit notice and stop.
  2. Append the user's message.
  3. If the prior history has SUMMARY_TRIGGER_MESSAGES or more entries and the
     quota leaves room, summarize it first and store the summary (1 unit).
  4. Assemble summary + mode instruction + history + user text, call the text
     model, format the reply, append it, count 1 unit.
  Any pipeline error becomes a localized fallback reply; the failed call costs
  no quota.

PHOTO FLOW (send_photo): same gate, calories instruction, vision model. On
success a placeholder user message and the analysis are appended together.

Messages live in memory only; a surface starts over with the greeting when the
process restarts, while the counter and summary survive in the store.
"""

import logging
import threading
from typing import Dict, List, Optional

from config import (
    CLEAR_CHAT_STATE_ON_LOGOUT,
    SUMMARY_TRIGGER_MESSAGES,
    USAGE_LIMIT,
    normalize_language,
)
from fitchat.errors import FitChatError, SessionBusyError
from fitchat.i18n import t
from fitchat.models import ChatMode, DisplayMessage
from fitchat.services import quota
from fitchat.services.assembler import build_chat_request, build_summary_request, build_vision_request
from fitchat.services.completion_client import CompletionClient
from fitchat.services.conversation import ConversationStore
from fitchat.services.formatter import format_for_chat, strip_markup
from fitchat.services.storage import KeyValueStore


logger = logging.getLogger("FitChat")

SURFACES = ("calendar", "global")


def usage_key_for(namespace: str) -> str:
    return f"{namespace}_ai_usage"


def summary_key_for(namespace: str) -> str:
    return f"{namespace}_ai_summary"


def clear_chat_state(store: KeyValueStore, namespace: str) -> None:
    """Delete the stored usage counter and summary of a namespace. Failures are logged."""
    for key in (usage_key_for(namespace), summary_key_for(namespace)):
        try:
            store.delete(key)
        except Exception as e:
            logger.warning("Could not clear %s: %s", key, e)


# ==============================================================================
# CHAT SESSION (ONE PER SURFACE)
# ==============================================================================

class ChatSession:
    """
    Conversation, quota and summary of one chat surface. Only one send runs at
    a time; a second concurrent send raises SessionBusyError.
    """

    def __init__(
        self,
        namespace: str,
        store: KeyValueStore,
        client: CompletionClient,
        language: str = "en",
        usage_limit: int = USAGE_LIMIT,
        summary_trigger: int = SUMMARY_TRIGGER_MESSAGES,
    ):
        self.namespace = namespace
        self.store = store
        self.client = client
        self.language = normalize_language(language)
        self.usage_limit = usage_limit
        self.summary_trigger = summary_trigger
        self.conversation = ConversationStore(t("greeting", self.language))
        self.usage_count = self._load_usage()
        self.summary = self._load_summary()
        self._sending = threading.Lock()

    # --------------------------------------------------------------------------
    # PERSISTED STATE
    # --------------------------------------------------------------------------

    @property
    def usage_key(self) -> str:
        return usage_key_for(self.namespace)

    @property
    def summary_key(self) -> str:
        return summary_key_for(self.namespace)

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning("Chat state unavailable for %s: %s", key, e)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self.store.set(key, value)
        except Exception as e:
            # The in-memory value still applies for this process.
            logger.warning("Could not persist %s: %s", key, e)

    def _load_usage(self) -> int:
        return quota.parse_usage(self._read(self.usage_key), self.usage_limit)

    def _load_summary(self) -> str:
        return self._read(self.summary_key) or ""

    def _record_usage(self) -> None:
        self.usage_count = quota.record_usage(self.usage_count, self.usage_limit)
        self._write(self.usage_key, str(self.usage_count))

    def _persist_summary(self, text: str) -> None:
        self.summary = text
        self._write(self.summary_key, text)

    def clear_persisted_state(self) -> None:
        """Forget the usage counter and summary (stored and in memory)."""
        clear_chat_state(self.store, self.namespace)
        self.usage_count = 0
        self.summary = ""

    # --------------------------------------------------------------------------
    # QUOTA
    # --------------------------------------------------------------------------

    def can_proceed(self) -> bool:
        return quota.can_proceed(self.usage_count, self.usage_limit)

    @property
    def remaining_uses(self) -> int:
        return quota.remaining_uses(self.usage_count, self.usage_limit)

    @property
    def messages(self) -> List[DisplayMessage]:
        return self.conversation.messages

    def _limit_notice(self, language: str) -> List[DisplayMessage]:
        logger.info("[%s] Usage limit reached (%d/%d)", self.namespace, self.usage_count, self.usage_limit)
        return [self.conversation.add_ai(t("limit_reached", language))]

    # --------------------------------------------------------------------------
    # SENDING
    # --------------------------------------------------------------------------

    def send_message(self, text: str, mode=ChatMode.ADVICE, language: Optional[str] = None) -> List[DisplayMessage]:
        """
        Send a text message and return the messages it appended, in order.
        Blank text appends nothing.
        """
        language = normalize_language(language or self.language)
        if not text or not text.strip():
            return []
        if not self._sending.acquire(blocking=False):
            raise SessionBusyError(self.namespace)
        try:
            if not self.can_proceed():
                return self._limit_notice(language)

            history = self.conversation.to_request_history()
            appended = [self.conversation.add_user(text)]
            try:
                if self._should_summarize(len(history)):
                    self._summarize(history, language)

                request = build_chat_request(self.summary, mode, history, text, language)
                reply = self.client.complete(request, language=language)
                formatted = format_for_chat(reply)
            except FitChatError as e:
                logger.error("[%s] Chat request failed: %s", self.namespace, e, exc_info=True)
                appended.append(self.conversation.add_ai(t("chat_fallback", language)))
                return appended

            appended.append(self.conversation.add_ai(formatted))
            self._record_usage()
            logger.info("[%s] Reply sent (usage %d/%d)", self.namespace, self.usage_count, self.usage_limit)
            return appended
        finally:
            self._sending.release()

    def send_photo(self, image_data_url: str, language: Optional[str] = None) -> List[DisplayMessage]:
        """Analyze a meal photo (data: URI) and return the messages it appended."""
        language = normalize_language(language or self.language)
        if not self._sending.acquire(blocking=False):
            raise SessionBusyError(self.namespace)
        try:
            if not self.can_proceed():
                return self._limit_notice(language)

            history = self.conversation.to_request_history()
            try:
                request = build_vision_request(self.summary, history, language)
                reply = self.client.complete_vision(
                    request,
                    t("photo_request", language),
                    image_data_url,
                    language=language,
                )
                formatted = format_for_chat(reply)
            except FitChatError as e:
                logger.error("[%s] Photo analysis failed: %s", self.namespace, e, exc_info=True)
                return [self.conversation.add_ai(t("photo_fallback", language))]

            appended = [
                self.conversation.add_user(t("photo_sent", language)),
                self.conversation.add_ai(formatted),
            ]
            self._record_usage()
            logger.info("[%s] Photo analyzed (usage %d/%d)", self.namespace, self.usage_count, self.usage_limit)
            return appended
        finally:
            self._sending.release()

    def reject_photo(self, reason: str, language: Optional[str] = None) -> List[DisplayMessage]:
        """Append the photo fallback for a photo that never reached the model. Costs nothing."""
        language = normalize_language(language or self.language)
        logger.warning("[%s] Photo rejected: %s", self.namespace, reason)
        return [self.conversation.add_ai(t("photo_fallback", language))]

    # --------------------------------------------------------------------------
    # SUMMARIZATION
    # --------------------------------------------------------------------------

    def _should_summarize(self, history_length: int) -> bool:
        # Shares the gate of the send itself; record_usage saturates at the limit.
        return history_length >= self.summary_trigger and self.can_proceed()

    def _summarize(self, history, language: str) -> None:
        logger.info("[%s] Summarizing %d messages", self.namespace, len(history))
        raw = self.client.complete(build_summary_request(history, language), language=language)
        self._persist_summary(strip_markup(raw))
        self._record_usage()


# ==============================================================================
# CHAT SERVICE (BOTH SURFACES)
# ==============================================================================

class ChatService:
    """
    Owns one ChatSession per surface. Sessions are created on first use, which
    is when their persisted counter and summary are read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        client: CompletionClient,
        clear_on_logout: bool = CLEAR_CHAT_STATE_ON_LOGOUT,
    ):
        self.store = store
        self.client = client
        self.clear_on_logout = clear_on_logout
        self.sessions: Dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def get_session(self, surface: str, language: str = "en") -> ChatSession:
        """Return the session for surface, creating it if needed. Unknown surface -> ValueError."""
        if surface not in SURFACES:
            raise ValueError(f"Unknown chat surface '{surface}'. Expected one of: {', '.join(SURFACES)}")
        with self._lock:
            session = self.sessions.get(surface)
            if session is None:
                session = ChatSession(surface, self.store, self.client, language=language)
                self.sessions[surface] = session
                logger.info("Created chat session '%s' (usage %d, summary %s)",
                            surface, session.usage_count, "yes" if session.summary else "no")
            return session

    def logout(self) -> bool:
        """
        Apply the logout policy. Conversations are always dropped; usage counters
        and summaries are cleared only if clear_on_logout is set. Returns whether
        persisted state was cleared.
        """
        with self._lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()
        if self.clear_on_logout:
            for surface in SURFACES:
                clear_chat_state(self.store, surface)
            logger.info("Logout: chat conversations and persisted state cleared")
            return True
        logger.info("Logout: %d chat conversation(s) dropped, persisted state kept", len(sessions))
        return False
