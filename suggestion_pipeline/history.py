"""
Per-session conversation history.

A bounded sliding window of user/assistant turns. The buffer holds at most
2 x max_history turns; eviction always removes the oldest user/assistant pair
so the buffer never holds an odd number of entries after an exchange.
"""

from __future__ import annotations

from typing import List, Sequence

from .models import Role, Turn


class HistoryBuffer:
    def __init__(self, max_history: int = 10):
        if max_history < 1:
            raise ValueError("max_history must be >= 1")
        self.max_history = max_history
        self._turns: List[Turn] = []

    @property
    def capacity(self) -> int:
        return 2 * self.max_history

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: Turn) -> None:
        """Append a single turn. Does not trim; see append_exchange."""
        self._turns.append(turn)

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        """Append one transcript/suggestion pair and enforce the cap."""
        self.append(Turn(Role.USER, user_text))
        self.append(Turn(Role.ASSISTANT, assistant_text))
        self.trim()

    def trim(self) -> None:
        """Evict oldest turns down to capacity. Leaves an even count."""
        if len(self._turns) > self.capacity and len(self._turns) % 2:
            # An unpaired turn from a bare append() goes first
            del self._turns[0]
        while len(self._turns) > self.capacity:
            del self._turns[:2]

    def snapshot(self, last: int | None = None) -> Sequence[Turn]:
        """Ordered copy of the history, most recent last."""
        turns = tuple(self._turns)
        if last is not None:
            return turns[-last:] if last > 0 else ()
        return turns

    def clear(self) -> None:
        self._turns.clear()
