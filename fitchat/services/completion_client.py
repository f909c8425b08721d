"""
REMOTE COMPLETION CLIENT
========================

Sends chat-completion requests to the OpenRouter proxy (POST /api/openrouter on
this server by default) and returns the first choice's message content.

  complete(messages)                          - text model (TEXT_MODEL)
  complete_vision(messages, text, image_url)  - vision model (VISION_MODEL); the
                                                photo goes in its own image_url part

One request per call: no retries, no streaming, and no timeout unless
COMPLETION_TIMEOUT is set. Raw model text is returned; formatting is the
caller's job.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from config import COMPLETION_TIMEOUT, PROXY_URL, TEXT_MODEL, VISION_MODEL, get_system_prompt
from fitchat.errors import MalformedResponseError, RemoteServiceError, ValidationError
from fitchat.models import ChatMessage


logger = logging.getLogger("FitChat")


def extract_content(data: Any) -> str:
    """Return choices[0].message.content, or raise MalformedResponseError."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        raise MalformedResponseError("AI response has no content.", {"response": data})
    return content


class CompletionClient:
    """
    Thin HTTP client for the proxy. A requests.Session can be injected (tests,
    connection reuse); otherwise module-level requests.post is used.
    """

    def __init__(
        self,
        endpoint: str = PROXY_URL,
        text_model: str = TEXT_MODEL,
        vision_model: str = VISION_MODEL,
        timeout: Optional[float] = COMPLETION_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.text_model = text_model
        self.vision_model = vision_model
        self.timeout = timeout
        self.http = http

    # --------------------------------------------------------------------------
    # PUBLIC API
    # --------------------------------------------------------------------------

    def complete(
        self,
        messages: Sequence[ChatMessage],
        model: Optional[str] = None,
        language: Optional[str] = None,
    ) -> str:
        """Send messages to the text model and return the assistant's reply."""
        payload_messages = self._with_persona(messages, language)
        return self._post(model or self.text_model, payload_messages)

    def complete_vision(
        self,
        messages: Sequence[ChatMessage],
        user_text: str,
        image_data_url: str,
        model: Optional[str] = None,
        language: Optional[str] = None,
    ) -> str:
        """
        Send messages plus one user turn holding user_text and the photo to the
        vision model. image_data_url must be a data: URI.
        """
        if not image_data_url or not image_data_url.startswith("data:"):
            raise ValidationError("Meal photo must be sent as a data: URI")
        payload_messages = self._with_persona(messages, language)
        payload_messages.append(ChatMessage.user_with_image(user_text, image_data_url))
        return self._post(model or self.vision_model, payload_messages)

    # --------------------------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------------------------

    @staticmethod
    def _with_persona(messages: Sequence[ChatMessage], language: Optional[str]) -> List[ChatMessage]:
        prefix = [ChatMessage.system(get_system_prompt(language))] if language else []
        return prefix + list(messages)

    def _post(self, model: str, messages: Sequence[ChatMessage]) -> str:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_wire() for m in messages],
        }
        post = self.http.post if self.http is not None else requests.post
        logger.info("Requesting completion from %s (model=%s, %d messages)", self.endpoint, model, len(messages))

        try:
            response = post(
                self.endpoint,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteServiceError(None, str(e)) from e

        if not response.ok:
            raise RemoteServiceError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("AI response is not valid JSON.", {"body": response.text}) from e

        return extract_content(data)
