"""
Structured JSON pipeline events (shared).

Shared by the gateway and the suggestion pipeline. Every event carries the
same envelope so suggestion cycles can be followed across components by
correlation_id (the suggestion id).
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, TextIO


class Component(str, Enum):
    """Event-emitting components."""

    GATEWAY = "gateway"
    SUGGESTION_PIPELINE = "suggestion_pipeline"


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


DEFAULT_PII = {"contains_pii": False, "fields": [], "handling": "none"}


def pii_marker(*fields: str) -> Dict[str, Any]:
    """PII envelope for events that carry transcript or suggestion text."""
    return {"contains_pii": True, "fields": list(fields), "handling": "none"}


class EventEmitter:
    """Emits structured JSON events, one per line."""

    def __init__(self, component: Component, stream: Optional[TextIO] = None):
        self.component = component
        self._stream = stream

    def emit(
        self,
        event_type: str,
        session_id: str,
        severity: Severity = Severity.INFO,
        correlation_id: Optional[str] = None,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Emit one event.

        Args:
            event_type: Stable event type string (e.g. "suggestion.accepted")
            session_id: Opaque session identifier
            severity: Event severity level
            correlation_id: Suggestion id, defaults to the session id
            pii: PII envelope (see pii_marker)
            **kwargs: Event-specific fields; None values are dropped

        Returns the emitted event dict.
        """
        event: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "component": self.component.value,
            "event_type": event_type,
            "severity": severity.value,
            "correlation_id": correlation_id or session_id,
            "pii": pii or DEFAULT_PII,
        }
        event.update({k: v for k, v in kwargs.items() if v is not None})

        # Resolved per call so pytest's capsys sees the output
        stream = self._stream or sys.stdout
        stream.write(json.dumps(event, ensure_ascii=False))
        stream.write("\n")
        stream.flush()
        return event

    def session_opened(self, session_id: str, *, user_id: str, demo: bool) -> None:
        self.emit("session.opened", session_id, user_id=user_id, demo=demo)

    def session_closed(self, session_id: str, *, turns: int, duration_ms: int) -> None:
        self.emit("session.closed", session_id, turns=turns, duration_ms=duration_ms)

    def suggestion_requested(
        self,
        session_id: str,
        suggestion_id: str,
        *,
        model: str,
        transcript_length: int,
        confidence: float,
    ) -> None:
        self.emit(
            "suggestion.requested",
            session_id,
            correlation_id=suggestion_id,
            model=model,
            transcript_length=transcript_length,
            confidence=confidence,
        )

    def suggestion_accepted(
        self,
        session_id: str,
        suggestion_id: str,
        *,
        category: str,
        intent: str,
        language: str,
        text: str,
        latency_ms: int,
    ) -> None:
        self.emit(
            "suggestion.accepted",
            session_id,
            correlation_id=suggestion_id,
            pii=pii_marker("text"),
            category=category,
            intent=intent,
            language=language,
            text=text,
            word_count=len(text.split()),
            latency_ms=latency_ms,
        )

    def suggestion_discarded(
        self,
        session_id: str,
        suggestion_id: str,
        *,
        outcome: str,
        category: Optional[str] = None,
        latency_ms: Optional[int] = None,
    ) -> None:
        """Silent outcomes: suppressed (blank text), duplicate, dropped (overlap)."""
        self.emit(
            f"suggestion.{outcome}",
            session_id,
            severity=Severity.DEBUG,
            correlation_id=suggestion_id,
            category=category,
            latency_ms=latency_ms,
        )

    def suggestion_failed(
        self,
        session_id: str,
        suggestion_id: str,
        *,
        category: str,
        error_type: str,
        latency_ms: Optional[int] = None,
    ) -> None:
        self.emit(
            "suggestion.failed",
            session_id,
            severity=Severity.WARN if category == "completion.timeout" else Severity.ERROR,
            correlation_id=suggestion_id,
            category=category,
            error_type=error_type,
            latency_ms=latency_ms,
        )


# Global event emitter for the suggestion pipeline
pipeline_emitter = EventEmitter(Component.SUGGESTION_PIPELINE)
