"""
Core data model of the suggestion pipeline.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Category(str, Enum):
    """Sales-journey phase (macro context)."""

    RAPPORT = "rapport"
    DISCOVERY = "discovery"
    VALUE = "value"
    OBJECTION = "objection"
    CLOSING = "closing"


class Intent(str, Enum):
    """Customer's immediate conversational goal (micro action)."""

    EXPLORE = "explore"
    EXPRESS_NEED = "express_need"
    SHOW_INTEREST = "show_interest"
    RAISE_OBJECTION = "raise_objection"
    DECIDE = "decide"


DEFAULT_CATEGORY = Category.DISCOVERY
DEFAULT_INTENT = Intent.EXPLORE
DEFAULT_LANGUAGE = "en"

CATEGORY_EMOJI = {
    Category.RAPPORT.value: "🤝",
    Category.DISCOVERY.value: "🧭",
    Category.VALUE.value: "💎",
    Category.OBJECTION.value: "⚖️",
    Category.CLOSING.value: "✅",
}
DEFAULT_EMOJI = "💡"


def emoji_for(category: str) -> str:
    return CATEGORY_EMOJI.get(category, DEFAULT_EMOJI)


@dataclass(frozen=True)
class Turn:
    """One utterance retained in session history."""

    role: Role
    text: str


@dataclass(frozen=True)
class Suggestion:
    """A validated suggestion ready for emission. `text` is never blank."""

    id: str
    category: str
    intent: str
    language: str
    text: str

    def __post_init__(self):
        if not self.text.strip():
            raise ValueError("suggestion text must not be blank")

    @property
    def emoji(self) -> str:
        return emoji_for(self.category)


_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_suggestion_id() -> str:
    """Unique per request: millisecond timestamp plus a random suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"s-{int(time.time() * 1000)}-{suffix}"


def fingerprint(category: str, text: str, prefix_chars: int = 60) -> str:
    """Dedup key: category plus the first `prefix_chars` characters of the text."""
    return f"{category}:{text[:prefix_chars]}"
