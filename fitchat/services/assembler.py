"""
MESSAGE ASSEMBLER
=================

Builds the upstream message lists for the three kinds of request a chat
surface makes:

  build_chat_request    - [summary?] + mode instruction + history + user text
  build_vision_request  - [summary?] + calories instruction + history
                          (the client appends the text+image user turn)
  build_summary_request - summarize instruction + history

The persona prompt is not added here; the completion client prepends it.
"""

from typing import List, Optional, Sequence

from config import (
    SUMMARIZE_INSTRUCTIONS,
    SUMMARY_PREFIX_TEMPLATES,
    get_mode_instruction,
    normalize_language,
)
from fitchat.models import ChatMessage, ChatMode


def summary_message(summary: str, language) -> Optional[ChatMessage]:
    """System message carrying the stored summary, or None when there is none yet."""
    if not summary:
        return None
    template = SUMMARY_PREFIX_TEMPLATES[normalize_language(language)]
    return ChatMessage.system(template.format(summary=summary))


def _context_messages(
    summary: str,
    mode,
    history: Sequence[ChatMessage],
    language,
) -> List[ChatMessage]:
    messages: List[ChatMessage] = []
    prefix = summary_message(summary, language)
    if prefix is not None:
        messages.append(prefix)
    messages.append(ChatMessage.system(get_mode_instruction(mode, language)))
    messages.extend(history)
    return messages


def build_chat_request(
    summary: str,
    mode,
    history: Sequence[ChatMessage],
    user_text: str,
    language,
) -> List[ChatMessage]:
    messages = _context_messages(summary, mode, history, language)
    messages.append(ChatMessage.user(user_text))
    return messages


def build_vision_request(
    summary: str,
    history: Sequence[ChatMessage],
    language,
) -> List[ChatMessage]:
    return _context_messages(summary, ChatMode.CALORIES, history, language)


def build_summary_request(history: Sequence[ChatMessage], language) -> List[ChatMessage]:
    instruction = SUMMARIZE_INSTRUCTIONS[normalize_language(language)]
    return [ChatMessage.system(instruction), *history]
