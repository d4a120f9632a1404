"""
Per-session duplicate suggestion suppression.

A live (unexpired) entry for a fingerprint is the only dedup signal. Expiry is
checked lazily on read against an injectable clock, so the cache owns no
background timers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    expires_at: float


class SuggestionDedupCache:
    def __init__(
        self,
        default_ttl_ms: int = 30000,
        *,
        now: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_ms = default_ttl_ms
        self._now = now
        self._entries: Dict[str, CacheEntry] = {}

    def should_suppress(self, fingerprint: str) -> bool:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return False
        if self._now() >= entry.expires_at:
            del self._entries[fingerprint]
            return False
        return True

    def remember(self, fingerprint: str, ttl_ms: Optional[int] = None) -> CacheEntry:
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        entry = CacheEntry(fingerprint=fingerprint, expires_at=self._now() + ttl / 1000.0)
        self._entries[fingerprint] = entry
        self._evict_expired()
        return entry

    def _evict_expired(self) -> None:
        now = self._now()
        for key in [k for k, e in self._entries.items() if now >= e.expires_at]:
            del self._entries[key]

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
