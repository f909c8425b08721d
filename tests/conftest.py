"""Pytest configuration and fixtures for FitChat tests."""

import os
import tempfile
from pathlib import Path

import pytest

# Keep chat state out of the repo BEFORE importing config (it creates the directory).
TEST_STATE_DIR = Path(tempfile.mkdtemp(prefix="fitchat-test-"))
os.environ["CHAT_STATE_DIR"] = str(TEST_STATE_DIR)

from fitchat.errors import RemoteServiceError  # noqa: E402 - config must see CHAT_STATE_DIR first
from fitchat.services.storage import InMemoryStore  # noqa: E402


class FakeCompletionClient:
    """
    Stands in for CompletionClient. Replies are handed out in order; an
    Exception instance in the list is raised instead of returned.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def _next(self):
        reply = self.replies.pop(0) if self.replies else "Eat more vegetables."
        if isinstance(reply, Exception):
            raise reply
        return reply

    def complete(self, messages, model=None, language=None):
        self.calls.append({"kind": "text", "messages": list(messages), "language": language})
        return self._next()

    def complete_vision(self, messages, user_text, image_data_url, model=None, language=None):
        self.calls.append({
            "kind": "vision",
            "messages": list(messages),
            "user_text": user_text,
            "image": image_data_url,
            "language": language,
        })
        return self._next()


class FakeResponse:
    """Minimal requests.Response look-alike."""

    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("" if json_data is None else str(json_data))

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


def completion_body(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def upstream_down():
    return RemoteServiceError(503, "upstream unavailable")
