"""
OPENROUTER PROXY SERVICE
========================

Server side of POST /api/openrouter. The browser (or the completion client)
never sees the OpenRouter key; this module adds it and forwards the payload.

ORDER OF CHECKS (each request):
  1. OPENROUTER_API_KEY present?  no -> ConfigurationError (500)
  2. payload has a messages list? no -> ValidationError (400)
  3. forward upstream; non-2xx -> RemoteServiceError (same status, raw body)
  4. return the upstream JSON unchanged
"""

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from config import APP_TITLE, COMPLETION_TIMEOUT, OPENROUTER_API_URL, get_openrouter_api_key
from fitchat.errors import ConfigurationError, MalformedResponseError, RemoteServiceError, ValidationError
from fitchat.models import ProxyPayload


logger = logging.getLogger("FitChat")

INVALID_PAYLOAD_MESSAGE = "Invalid payload: expected { messages: [...] }"
MISSING_KEY_MESSAGE = "Missing OPENROUTER_API_KEY on server"


def validate_payload(payload: Any) -> ProxyPayload:
    if not isinstance(payload, dict):
        raise ValidationError(INVALID_PAYLOAD_MESSAGE)
    try:
        return ProxyPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(INVALID_PAYLOAD_MESSAGE, {"errors": e.errors()}) from e


def upstream_headers(api_key: str, origin: Optional[str]) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
        "HTTP-Referer": origin or "",
        "X-Title": APP_TITLE,
    }


def forward_completion(payload: Any, origin: Optional[str] = None) -> Dict[str, Any]:
    """Forward a chat-completion payload to OpenRouter and return its JSON body."""
    api_key = get_openrouter_api_key()
    if not api_key:
        raise ConfigurationError(MISSING_KEY_MESSAGE)

    validate_payload(payload)

    logger.info("Forwarding completion (model=%s, %d messages)",
                payload.get("model"), len(payload["messages"]))
    try:
        resp = requests.post(
            OPENROUTER_API_URL,
            json=payload,
            headers=upstream_headers(api_key, origin),
            timeout=COMPLETION_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        raise RemoteServiceError(None, str(e)) from e

    if not resp.ok:
        logger.warning("OpenRouter returned %s", resp.status_code)
        raise RemoteServiceError(resp.status_code, resp.text)

    try:
        return resp.json()
    except ValueError as e:
        raise MalformedResponseError("OpenRouter returned a non-JSON body", {"body": resp.text}) from e
