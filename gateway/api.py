"""
Read API.

- GET /events/{user_id}          persisted suggestions for a user, newest first
- GET /events/{user_id}/stats    aggregate performance per user
- GET /sessions                  live connections
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from .services import get_services
from .sessions import session_registry

router = APIRouter(tags=["read"])


class SessionSummary(BaseModel):
    """Live connection summary."""
    session_id: str
    user_id: str
    demo: bool
    state: str
    turns: int
    started_at: str


@router.get("/events/{user_id}")
async def list_events(
    user_id: str,
    session_id: Optional[str] = Query(None, description="Restrict to one session"),
    limit: int = Query(10, ge=1, le=1000, description="Max events to return"),
) -> dict:
    events = await get_services().event_store.list_by_user(user_id, session_id=session_id, limit=limit)
    return {
        "user_id": user_id,
        "events": events,
        "count": len(events),
    }


@router.get("/events/{user_id}/stats")
async def get_stats(user_id: str) -> dict:
    stats = await get_services().event_store.aggregate_by_user(user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Stats not available")
    return stats.to_dict()


@router.get("/sessions", response_model=List[SessionSummary])
async def list_sessions(
    user_id: Optional[str] = Query(None, description="Filter by user_id"),
) -> List[SessionSummary]:
    return [SessionSummary(**c.summary()) for c in session_registry.list(user_id=user_id)]
