"""
RESPONSE FORMATTER
==================

Turns model output into text that reads well in a narrow chat bubble. The
model is told to answer in plain text but doesn't always listen, so the
output is normalized here.

Everything is driven by ordered lists of TextRule (pattern, replacement):

  MARKUP_RULES       - strip code fences, headings, list markers, emphasis,
                       blockquotes, image and link syntax
  LABEL_BREAK_RULES  - start a new line at day/meal labels, per language
  WHITESPACE_RULES   - collapse runs of spaces and blank lines

To support another language's meal vocabulary, append rules to
LABEL_BREAK_RULES; no code changes are needed.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union


@dataclass(frozen=True)
class TextRule:
    """One regex substitution. replacement may use group references (\\1)."""
    pattern: str
    replacement: str
    flags: int = 0

    def apply(self, text: str) -> str:
        return re.sub(self.pattern, self.replacement, text, flags=self.flags)


class TextPipeline:
    """Applies rules in order; each rule sees the previous rule's output."""

    def __init__(self, rules: Iterable[TextRule]):
        self.rules: List[TextRule] = list(rules)

    def __call__(self, text: str) -> str:
        for rule in self.rules:
            text = rule.apply(text)
        return text

    def __add__(self, other: Union["TextPipeline", Sequence[TextRule]]) -> "TextPipeline":
        extra = other.rules if isinstance(other, TextPipeline) else list(other)
        return TextPipeline(self.rules + extra)


# ==============================================================================
# RULES
# ==============================================================================

MARKUP_RULES = [
    TextRule(r"```[\s\S]*?```", ""),                            # fenced code blocks
    TextRule(r"`([^`]*)`", r"\1"),                              # inline code
    TextRule(r"^#+\s*(.*)$", r"\1", re.MULTILINE),              # headings
    TextRule(r"^[ \t]*[-*+][ \t]+", "", re.MULTILINE),          # bullets
    TextRule(r"^[ \t]*\d+\.[ \t]+", "", re.MULTILINE),          # numbered lists
    TextRule(r"\*\*([^*]+)\*\*", r"\1"),                        # bold
    TextRule(r"\*([^*]+)\*", r"\1"),                            # italic
    TextRule(r"(?<!\w)_([^_]+)_(?!\w)", r"\1"),                 # italic underscores
    TextRule(r"~~([^~]+)~~", r"\1"),                            # strikethrough
    TextRule(r"^[ \t]*>[ \t]?", "", re.MULTILINE),              # blockquotes
    TextRule(r"!\[(.*?)\]\((.*?)\)", r"\1"),                    # images -> alt text
    TextRule(r"\[(.*?)\]\((.*?)\)", r"\1"),                     # links -> link text
]

LABEL_BREAK_RULES = [
    # English
    TextRule(r"\s*(Day\s*\d+:)", r"\n\1\n"),
    TextRule(r"\s*(Breakfast:|Lunch:|Dinner:|Snack:)", r"\n\1 "),
    # Vietnamese
    TextRule(r"\s*(Ngày\s*\d+:)", r"\n\1\n"),
    TextRule(r"\s*(Sáng:|Trưa:|Tối:|Ăn vặt:)", r"\n\1 "),
]

WHITESPACE_RULES = [
    TextRule(r"[ \t]{2,}", " "),
    TextRule(r"\n{3,}", "\n\n"),
]

# Spaces left at either edge of a line by the label rules.
LINE_EDGE_RULES = [
    TextRule(r"[ \t]+\n", "\n"),
    TextRule(r"\n[ \t]+", "\n"),
]

SENTENCE_BOUNDARY = re.compile(r"(?<=[.?!])\s+")

strip_markup_pipeline = TextPipeline(MARKUP_RULES) + WHITESPACE_RULES
label_break_pipeline = TextPipeline(LABEL_BREAK_RULES)
cleanup_pipeline = TextPipeline(WHITESPACE_RULES) + LINE_EDGE_RULES


def strip_markup(text: str) -> str:
    """Remove Markdown residue, keeping the readable text and existing newlines."""
    return strip_markup_pipeline(text or "").strip()


def pair_sentences(text: str) -> str:
    """Put a newline after every second sentence: "A. B. C. D." -> "A. B.\\nC. D."."""
    sentences = [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]
    lines = [" ".join(sentences[i:i + 2]) for i in range(0, len(sentences), 2)]
    return "\n".join(lines)


def format_for_chat(text: str) -> str:
    """
    Markup-free text with a line break before each day/meal label. A single
    dense paragraph with no labels is broken into two-sentence lines instead.
    """
    formatted = label_break_pipeline(strip_markup(text))
    if "\n" not in formatted:
        formatted = pair_sentences(formatted)
    return cleanup_pipeline(formatted).strip()
