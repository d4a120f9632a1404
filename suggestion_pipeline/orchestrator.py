"""
Session orchestrator.

One SuggestionSession per client connection. It owns the session's history
buffer and dedup cache and drives one suggestion cycle per transcript-ready
event:

    Idle -> Invoking -> {Suppressed | Duplicate | Error | Streaming} -> Idle

At most one cycle is in flight per session. A transcript that arrives while a
cycle is invoking or streaming is dropped (drop-latest).
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from logging_setup import Component, get_logger
from observability.events import EventEmitter, pipeline_emitter

from .completion import CompletionClient, CompletionInvoker, resolve_suggestion
from .config import PipelineConfig
from .dedup import SuggestionDedupCache
from .errors import ErrorCategory, MalformedModelOutput, PipelineError, PipelineErrorHandler
from .history import HistoryBuffer
from .models import Suggestion, fingerprint, new_suggestion_id
from .presets import QualityPreset, get_preset
from .prompts import build_messages
from .streaming import FixedPacing, PacingStrategy, SuggestionStreamer

logger = get_logger(Component.SESSION)

Sender = Callable[[Dict[str, Any]], Awaitable[None]]
AcceptedCallback = Callable[[str, str], Awaitable[None]]


class SessionState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    STREAMING = "streaming"
    CLOSED = "closed"


class CycleOutcome(str, Enum):
    ACCEPTED = "accepted"
    SUPPRESSED = "suppressed"
    DUPLICATE = "duplicate"
    ERROR = "error"
    DROPPED = "dropped"


@dataclass(frozen=True)
class TranscriptEvent:
    """A transcript fragment ready for a suggestion."""

    text: str
    confidence: float
    category_hint: Optional[str] = None


class CategoryVarietyMonitor:
    """Warns when the model keeps answering with the same category."""

    def __init__(self, window: int = 5, streak: int = 3):
        self.streak = streak
        self._recent: Deque[str] = deque(maxlen=window)

    def record(self, category: str) -> bool:
        """Record an accepted category; True when the recent window is monotonous."""
        self._recent.append(category)
        return len(self._recent) >= self.streak and len(set(self._recent)) == 1

    @property
    def recent(self) -> list[str]:
        return list(self._recent)


class SuggestionSession:
    def __init__(
        self,
        session_id: str,
        send: Sender,
        invoker: CompletionInvoker,
        *,
        preset: Optional[QualityPreset] = None,
        streamer: Optional[SuggestionStreamer] = None,
        max_history: int = 10,
        prompt_history_turns: int = 6,
        dedup_ttl_ms: int = 30000,
        fingerprint_prefix_chars: int = 60,
        profile: Optional[str] = None,
        on_accepted: Optional[AcceptedCallback] = None,
        now: Callable[[], float] = time.monotonic,
        emitter: EventEmitter = pipeline_emitter,
    ):
        self.session_id = session_id
        self._send = send
        self.invoker = invoker
        self.preset = preset or get_preset()
        self.streamer = streamer or SuggestionStreamer()
        self.prompt_history_turns = prompt_history_turns
        self.fingerprint_prefix_chars = fingerprint_prefix_chars
        self.profile = profile
        self.on_accepted = on_accepted
        self.emitter = emitter
        self.logger = logger.with_session(session_id)

        self.history = HistoryBuffer(max_history=max_history)
        self.dedup = SuggestionDedupCache(default_ttl_ms=dedup_ttl_ms, now=now)
        self.variety = CategoryVarietyMonitor()

        self.state = SessionState.IDLE
        self.turn_counter = 0
        self._opened_at = time.monotonic()

    @classmethod
    def from_config(
        cls,
        session_id: str,
        send: Sender,
        client: CompletionClient,
        config: PipelineConfig,
        *,
        pacing: Optional[PacingStrategy] = None,
        on_accepted: Optional[AcceptedCallback] = None,
    ) -> "SuggestionSession":
        return cls(
            session_id,
            send,
            CompletionInvoker(client, timeout_ms=config.completion_timeout_ms),
            preset=get_preset(config.quality_mode),
            streamer=SuggestionStreamer(pacing or FixedPacing(config.delta_pacing_ms)),
            max_history=config.max_history,
            prompt_history_turns=config.prompt_history_turns,
            dedup_ttl_ms=config.dedup_ttl_ms,
            fingerprint_prefix_chars=config.fingerprint_prefix_chars,
            profile=config.prompt_profile,
            on_accepted=on_accepted,
        )

    @property
    def busy(self) -> bool:
        return self.state in (SessionState.INVOKING, SessionState.STREAMING)

    async def handle_transcript(self, event: TranscriptEvent) -> CycleOutcome:
        """Run one suggestion cycle for a transcript-ready event."""
        suggestion_id = new_suggestion_id()

        if self.state == SessionState.CLOSED or self.busy:
            self.logger.info(
                "Transcript dropped, session closed"
                if self.state == SessionState.CLOSED
                else "Transcript dropped, cycle already in flight",
                state=self.state.value,
                correlation_id=suggestion_id,
            )
            self.emitter.suggestion_discarded(self.session_id, suggestion_id, outcome=CycleOutcome.DROPPED.value)
            return CycleOutcome.DROPPED

        self.state = SessionState.INVOKING
        self.turn_counter += 1
        try:
            return await self._run_cycle(event, suggestion_id)
        finally:
            if self.state != SessionState.CLOSED:
                self.state = SessionState.IDLE

    async def _run_cycle(self, event: TranscriptEvent, suggestion_id: str) -> CycleOutcome:
        t_start = time.perf_counter()
        log = self.logger.bind(correlation_id=suggestion_id)
        log.info_pii("Generating suggestion", transcript=event.text[:100])

        messages = build_messages(
            event.text,
            event.confidence,
            self.history.snapshot(),
            category_hint=event.category_hint,
            history_turns=self.prompt_history_turns,
            profile=self.profile,
        )
        self.emitter.suggestion_requested(
            self.session_id,
            suggestion_id,
            model=self.preset.model_id,
            transcript_length=len(event.text),
            confidence=event.confidence,
        )

        try:
            output = await self.invoker.invoke(messages, self.preset)
        except PipelineError as exc:
            await self._report_failure(exc, suggestion_id, _elapsed_ms(t_start))
            return CycleOutcome.ERROR

        latency_ms = _elapsed_ms(t_start)
        if self.state == SessionState.CLOSED:
            return CycleOutcome.DROPPED

        suggestion = resolve_suggestion(output, suggestion_id)
        if suggestion is None:
            log.debug("Empty suggestion received, skipping")
            self.emitter.suggestion_discarded(
                self.session_id, suggestion_id, outcome=CycleOutcome.SUPPRESSED.value, latency_ms=latency_ms
            )
            return CycleOutcome.SUPPRESSED

        key = fingerprint(suggestion.category, suggestion.text, self.fingerprint_prefix_chars)
        if self.dedup.should_suppress(key):
            log.debug("Duplicate suggestion detected, skipping")
            self.emitter.suggestion_discarded(
                self.session_id,
                suggestion_id,
                outcome=CycleOutcome.DUPLICATE.value,
                category=suggestion.category,
                latency_ms=latency_ms,
            )
            return CycleOutcome.DUPLICATE

        self.dedup.remember(key)
        self.history.append_exchange(event.text, suggestion.text)
        if self.variety.record(suggestion.category):
            log.warning(
                "Suggestions keep using the same category",
                category=suggestion.category,
                recent_categories=self.variety.recent,
            )

        self.emitter.suggestion_accepted(
            self.session_id,
            suggestion_id,
            category=suggestion.category,
            intent=suggestion.intent,
            language=suggestion.language,
            text=suggestion.text,
            latency_ms=latency_ms,
        )

        self.state = SessionState.STREAMING
        await self._stream(suggestion)

        log.info(
            "Suggestion delivered",
            category=suggestion.category,
            intent=suggestion.intent,
            language=suggestion.language,
            latency_ms=_elapsed_ms(t_start),
        )
        await self._persist(suggestion)
        return CycleOutcome.ACCEPTED

    async def _stream(self, suggestion: Suggestion) -> None:
        async for message in self.streamer.stream(suggestion):
            await self._send(message)

    async def _report_failure(self, exc: PipelineError, suggestion_id: str, latency_ms: int) -> None:
        category = PipelineErrorHandler.classify(exc)
        if isinstance(exc, MalformedModelOutput):
            self.logger.error(
                "Failed to parse model output",
                correlation_id=suggestion_id,
                reason=exc.reason,
                pii={"raw": exc.raw},
            )
        elif category == ErrorCategory.TIMEOUT:
            self.logger.warning(
                "Completion timed out",
                correlation_id=suggestion_id,
                timeout_ms=getattr(exc, "timeout_ms", None),
                latency_ms=latency_ms,
            )
        else:
            self.logger.error(
                "Completion failed",
                correlation_id=suggestion_id,
                category=category,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        self.emitter.suggestion_failed(
            self.session_id,
            suggestion_id,
            category=category,
            error_type=type(exc).__name__,
            latency_ms=latency_ms,
        )
        if self.state != SessionState.CLOSED:
            await self._send(PipelineErrorHandler.client_message(category))

    async def _persist(self, suggestion: Suggestion) -> None:
        if self.on_accepted is None:
            return
        try:
            await self.on_accepted(suggestion.category, suggestion.text)
        except Exception as e:
            self.logger.warning(
                "Persisting suggestion failed (non-fatal)",
                correlation_id=suggestion.id,
                error=str(e),
                error_type=type(e).__name__,
            )

    def close(self) -> None:
        """Discard all session state. Idempotent."""
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.history.clear()
        self.dedup.clear()
        self.emitter.session_closed(
            self.session_id,
            turns=self.turn_counter,
            duration_ms=int((time.monotonic() - self._opened_at) * 1000),
        )


def _elapsed_ms(t_start: float) -> int:
    return int((time.perf_counter() - t_start) * 1000)
