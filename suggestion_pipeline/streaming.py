"""
Streaming emitter.

Turns an accepted suggestion into the ordered message sequence

    suggestion.start, suggestion.delta x words, suggestion.end

with a pacing gap between deltas. Pacing is a presentation affordance only;
tests use NoPacing.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, List, Protocol

from .models import Suggestion
from .protocol import suggestion_delta, suggestion_end, suggestion_start


class PacingStrategy(Protocol):
    async def pause(self) -> None: ...


class FixedPacing:
    def __init__(self, delay_ms: int = 50):
        self.delay_ms = delay_ms

    async def pause(self) -> None:
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms / 1000.0)


class NoPacing:
    async def pause(self) -> None:
        return None


def split_chunks(text: str) -> List[str]:
    """One chunk per whitespace-delimited word, space-prefixed except the first."""
    return [word if i == 0 else f" {word}" for i, word in enumerate(text.split())]


class SuggestionStreamer:
    def __init__(self, pacing: PacingStrategy | None = None):
        self.pacing = pacing or FixedPacing()

    async def stream(self, suggestion: Suggestion) -> AsyncIterator[Dict[str, Any]]:
        """Yield the wire messages for one suggestion, in order."""
        yield suggestion_start(suggestion)
        chunks = split_chunks(suggestion.text)
        for i, chunk in enumerate(chunks):
            if i > 0:
                await self.pacing.pause()
            yield suggestion_delta(suggestion.id, chunk)
        yield suggestion_end(suggestion)

    async def collect(self, suggestion: Suggestion) -> List[Dict[str, Any]]:
        return [message async for message in self.stream(suggestion)]
