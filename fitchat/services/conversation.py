"""
CONVERSATION STORE
==================

Ordered, append-only list of the messages shown in one chat surface. It lives
in memory for the lifetime of the process; only the usage counter and the
summary are persisted (by ChatSession).
"""

from typing import Iterator, List

from fitchat.models import ChatMessage, DisplayMessage, Role


class ConversationStore:
    """Messages of one chat surface, starting with the assistant greeting."""

    def __init__(self, greeting: str):
        self._messages: List[DisplayMessage] = [DisplayMessage(role=Role.AI, content=greeting)]

    def append(self, message: DisplayMessage) -> None:
        self._messages.append(message)

    def add_ai(self, content: str) -> DisplayMessage:
        message = DisplayMessage(role=Role.AI, content=content)
        self.append(message)
        return message

    def add_user(self, content: str) -> DisplayMessage:
        message = DisplayMessage(role=Role.USER, content=content)
        self.append(message)
        return message

    @property
    def messages(self) -> List[DisplayMessage]:
        # Copy so callers can't reorder or drop stored messages.
        return list(self._messages)

    def to_request_history(self) -> List[ChatMessage]:
        """Every stored message as an upstream role/content pair, oldest first."""
        return [m.to_chat_message() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[DisplayMessage]:
        return iter(list(self._messages))
