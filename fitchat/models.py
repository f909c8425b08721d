"""
DATA MODELS MODULE
==================

This file defines the Pydantic models used on the wire (OpenRouter chat
messages), inside a chat surface (display messages), and by the HTTP API.

MODELS:
  Role / WireRole   - Who said something, as stored ("ai" | "user") and as sent
                      upstream ("system" | "user" | "assistant"). to_wire_role()
                      is the only place the two meet.
  ChatMode          - advice | menu | calories; picks the instruction template.
  Language          - en | vi.
  ChatMessage       - One upstream message; content is text or a list of parts.
  DisplayMessage    - One message as shown in a chat surface.
  SendMessageRequest / SendPhotoRequest / ChatTurnResponse / ChatHistoryResponse
                    - Bodies of the /chat endpoints.
  ProxyPayload      - Body of POST /api/openrouter (extra fields pass through).
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from config import MAX_MESSAGE_LENGTH, MAX_PHOTO_DATA_URI_LENGTH


# ==============================================================================
# ROLES, MODES, LANGUAGES
# ==============================================================================

class Role(str, Enum):
    """Author of a message shown in a chat surface."""
    AI = "ai"
    USER = "user"


class WireRole(str, Enum):
    """Role of a message in an upstream chat-completion request."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


_WIRE_ROLES = {
    Role.AI: WireRole.ASSISTANT,
    Role.USER: WireRole.USER,
}


def to_wire_role(role: Role) -> WireRole:
    """Map a display role to the role the completion API expects."""
    return _WIRE_ROLES[Role(role)]


class ChatMode(str, Enum):
    ADVICE = "advice"
    MENU = "menu"
    CALORIES = "calories"


class Language(str, Enum):
    EN = "en"
    VI = "vi"


# ==============================================================================
# UPSTREAM (WIRE) MESSAGES
# ==============================================================================

class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str  # A data: URI; never a remote link.


class ImageUrlPart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Union[TextPart, ImageUrlPart]


class ChatMessage(BaseModel):
    """
    A single upstream message. content is a plain string, except for the
    photo turn which carries a text part and an image_url part.
    """
    role: WireRole
    content: Union[str, List[ContentPart]]

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=WireRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=WireRole.USER, content=content)

    @classmethod
    def user_with_image(cls, text: str, image_data_url: str) -> "ChatMessage":
        """User turn with the instruction text and the photo as separate parts."""
        return cls(
            role=WireRole.USER,
            content=[
                TextPart(text=text),
                ImageUrlPart(image_url=ImageUrl(url=image_data_url)),
            ],
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ==============================================================================
# CHAT SURFACE MESSAGES
# ==============================================================================

class DisplayMessage(BaseModel):
    """One message in a chat surface. Order defines chronology; never edited."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(role=to_wire_role(self.role), content=self.content)


# ==============================================================================
# HTTP API BODIES
# ==============================================================================

class SendMessageRequest(BaseModel):
    """Body of POST /chat/{surface}."""
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    mode: ChatMode = ChatMode.ADVICE
    language: Language = Language.EN


class SendPhotoRequest(BaseModel):
    """Body of POST /chat/{surface}/photo. image is a data: URI of the meal photo."""
    image: str = Field(..., min_length=1, max_length=MAX_PHOTO_DATA_URI_LENGTH)
    language: Language = Language.EN


class ChatTurnResponse(BaseModel):
    """Messages appended by one send, plus the quota left afterwards."""
    surface: str
    messages: List[DisplayMessage]
    usage_count: int
    remaining_uses: int


class ChatHistoryResponse(BaseModel):
    surface: str
    messages: List[DisplayMessage]
    usage_count: int
    remaining_uses: int
    summary: str


class ProxyPayload(BaseModel):
    """
    Body forwarded to OpenRouter. Only messages is checked here; model and any
    other completion options are passed through untouched.
    """
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: List[Dict[str, Any]]
