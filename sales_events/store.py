"""
Sales event store implementations.

InMemoryEventStore keeps events in a bounded deque (FIFO) and backs demo mode
and tests. SupabaseEventStore writes to and reads from the `sales_events`
table through the PostgREST HTTP API.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from logging_setup import Component, get_logger

from .models import PerformanceStats, SalesEvent

logger = get_logger(Component.EVENT_STORE)


class EventStore(Protocol):
    async def record(self, event: SalesEvent) -> None: ...

    async def list_by_user(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]: ...

    async def aggregate_by_user(self, user_id: str) -> Optional[PerformanceStats]: ...


class InMemoryEventStore:
    """
    In-memory sales event store.

    Default max size: 10,000 events; the oldest are dropped first.
    """

    def __init__(self, max_events: int = 10000):
        self._events: deque[SalesEvent] = deque(maxlen=max_events)

    async def record(self, event: SalesEvent) -> None:
        self._events.append(event)

    async def list_by_user(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Events for a user, newest first."""
        results: List[Dict[str, Any]] = []
        for event in reversed(self._events):
            if event.user_id != user_id:
                continue
            if session_id and event.session_id != session_id:
                continue
            results.append(event.to_dict())
            if limit and len(results) >= limit:
                break
        return results

    async def aggregate_by_user(self, user_id: str) -> Optional[PerformanceStats]:
        return PerformanceStats.from_events(
            e.to_dict() for e in self._events if e.user_id == user_id
        )

    def clear(self) -> None:
        self._events.clear()


class SupabaseEventStore:
    """`sales_events` table over the Supabase REST (PostgREST) API."""

    TABLE = "sales_events"

    def __init__(self, url: str, service_key: str, *, timeout_seconds: float = 5.0):
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{self.TABLE}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def record(self, event: SalesEvent) -> None:
        """Insert one event. Raises on failure; callers decide whether to swallow."""
        start_ts = time.time()
        async with aiohttp.ClientSession(timeout=self._timeout) as s:
            async with s.post(
                self.endpoint,
                json=event.to_dict(),
                headers={**self._headers, "Prefer": "return=minimal"},
            ) as resp:
                resp.raise_for_status()
        logger.debug(
            "Sales event saved",
            session_id=event.session_id,
            category=event.category,
            latency_ms=int((time.time() - start_ts) * 1000),
        )

    async def _select(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """Rows matching `params`, normalised through SalesEvent. Malformed rows are skipped."""
        async with aiohttp.ClientSession(timeout=self._timeout) as s:
            async with s.get(self.endpoint, params=params, headers=self._headers) as resp:
                resp.raise_for_status()
                data = await resp.json()

        rows: List[Dict[str, Any]] = []
        for row in data if isinstance(data, list) else []:
            if not isinstance(row, dict):
                continue
            try:
                rows.append(SalesEvent.from_dict(row).to_dict())
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed sales event row", row_id=row.get("id"), error=str(e))
        return rows

    async def list_by_user(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if session_id:
            params["session_id"] = f"eq.{session_id}"
        try:
            return await self._select(params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(
                "Error fetching historical suggestions",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    async def aggregate_by_user(self, user_id: str) -> Optional[PerformanceStats]:
        params = {"select": "category,confidence,feedback", "user_id": f"eq.{user_id}"}
        try:
            rows = await self._select(params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(
                "Error analyzing performance",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        return PerformanceStats.from_events(rows)
