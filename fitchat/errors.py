"""Error types for the chat pipeline and the OpenRouter proxy.

Every error carries a human-readable message plus a details dict for logs.
None of these messages are shown to end users; the chat session turns them
into a localized fallback reply.
"""

from typing import Optional


class FitChatError(Exception):
    """Base exception for all FitChat errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FitChatError):
    """Raised when the server is missing a required setting (the upstream key).

    HTTP: 500 Internal Server Error
    """


class ValidationError(FitChatError):
    """Raised when a client payload is malformed (missing message list, bad image).

    HTTP: 400 Bad Request
    """


class RemoteServiceError(FitChatError):
    """Raised when the completion endpoint answers with a non-2xx status.

    status_code is None when the request never got an answer (connection refused,
    DNS failure). body holds the raw response text.

    HTTP: passes the upstream status through
    """

    def __init__(self, status_code: Optional[int], body: str):
        if status_code is None:
            message = f"Completion service unreachable: {body}"
        else:
            message = f"OpenRouter error {status_code}: {body}"
        super().__init__(message, {"status_code": status_code, "body": body})
        self.status_code = status_code
        self.body = body


class MalformedResponseError(FitChatError):
    """Raised when a 2xx response has no extractable message content.

    HTTP: 502 Bad Gateway
    """


class MediaAccessError(FitChatError):
    """Raised when a photo source cannot be opened or read.

    HTTP: 400 Bad Request
    """


class SessionBusyError(FitChatError):
    """Raised when a chat surface already has a send in flight.

    HTTP: 409 Conflict
    """

    def __init__(self, namespace: str):
        super().__init__(
            f"Chat surface '{namespace}' is already sending a message",
            {"namespace": namespace},
        )
        self.namespace = namespace
