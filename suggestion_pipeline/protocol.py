"""
Outbound wire messages.

Shapes and key order must stay compatible with existing clients:

    {"type":"suggestion.start","id":…,"category":…,"intent":…,"language":…,"emoji":…}
    {"type":"suggestion.delta","id":…,"textChunk":…}
    {"type":"suggestion.end","id":…,"fullText":…,"category":…,"intent":…}
    {"type":"error","message":…,"reason"?:"timeout"|"unknown"}
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from .models import Suggestion


def suggestion_start(suggestion: Suggestion) -> Dict[str, Any]:
    return {
        "type": "suggestion.start",
        "id": suggestion.id,
        "category": suggestion.category,
        "intent": suggestion.intent,
        "language": suggestion.language,
        "emoji": suggestion.emoji,
    }


def suggestion_delta(suggestion_id: str, text_chunk: str) -> Dict[str, Any]:
    return {"type": "suggestion.delta", "id": suggestion_id, "textChunk": text_chunk}


def suggestion_end(suggestion: Suggestion) -> Dict[str, Any]:
    return {
        "type": "suggestion.end",
        "id": suggestion.id,
        "fullText": suggestion.text,
        "category": suggestion.category,
        "intent": suggestion.intent,
    }


def error_message(message: str, reason: Optional[str] = None) -> Dict[str, Any]:
    msg: Dict[str, Any] = {"type": "error", "message": message}
    if reason is not None:
        msg["reason"] = reason
    return msg


def encode(message: Dict[str, Any]) -> str:
    """Compact JSON with raw UTF-8, matching JSON.stringify output."""
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))
