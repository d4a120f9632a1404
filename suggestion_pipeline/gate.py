"""
Transcript gate.

Accumulates final transcript fragments for one connection and decides when
the buffered utterances are worth a suggestion: enough confidence, enough
text, and not too soon after the previous one.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .orchestrator import TranscriptEvent


@dataclass(frozen=True)
class GateConfig:
    min_confidence: float = 0.7
    min_buffer_chars: int = 50
    debounce_ms: int = 3000
    buffer_max_chars: int = 1000
    buffer_keep_chars: int = 800


class TranscriptGate:
    def __init__(
        self,
        config: Optional[GateConfig] = None,
        *,
        now: Callable[[], float] = time.monotonic,
    ):
        self.config = config or GateConfig()
        self._now = now
        self.buffer = ""
        self._last_emit_ts: Optional[float] = None

    def offer(self, text: str, confidence: float, *, is_final: bool = True) -> Optional[TranscriptEvent]:
        """
        Feed one recogniser fragment.

        Interim fragments are ignored. Returns a TranscriptEvent carrying the
        whole buffer when the gate opens, otherwise None.
        """
        text = (text or "").strip()
        if not text or not is_final:
            return None

        self.buffer += " " + text

        now = self._now()
        cfg = self.config
        debounced = (
            self._last_emit_ts is None
            or (now - self._last_emit_ts) * 1000 > cfg.debounce_ms
        )
        if confidence < cfg.min_confidence or len(self.buffer) <= cfg.min_buffer_chars or not debounced:
            return None

        self._last_emit_ts = now
        event = TranscriptEvent(text=self.buffer.strip(), confidence=confidence)

        if len(self.buffer) > cfg.buffer_max_chars:
            self.buffer = self.buffer[-cfg.buffer_keep_chars:]
        return event
