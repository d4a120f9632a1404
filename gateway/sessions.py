"""
Connection registry.

Each client connection has exactly one session_id, one SuggestionSession and
one TranscriptGate. Nothing is shared between connections.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from suggestion_pipeline.gate import TranscriptGate
from suggestion_pipeline.orchestrator import SuggestionSession

from .auth import DEMO_USER_ID, Identity


def new_session_id(identity: Identity) -> str:
    """Opaque, time-based session id: demo_<ms> or session_<ms>_<user prefix>."""
    ms = int(time.time() * 1000)
    if identity.is_demo:
        return f"demo_{ms}"
    return f"session_{ms}_{identity.user_id[:8]}"


@dataclass
class Connection:
    """A live client connection."""

    session_id: str
    identity: Identity
    session: SuggestionSession
    gate: TranscriptGate
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Transcript tail and confidence of the cycle in flight
    cycle_context: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    @property
    def is_demo(self) -> bool:
        return self.identity.user_id == DEMO_USER_ID

    def summary(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "demo": self.is_demo,
            "state": self.session.state.value,
            "turns": self.session.turn_counter,
            "started_at": self.started_at.isoformat(),
        }


class SessionRegistry:
    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def add(self, connection: Connection) -> Connection:
        self._connections[connection.session_id] = connection
        return connection

    def get(self, session_id: str) -> Optional[Connection]:
        return self._connections.get(session_id)

    def list(self, user_id: Optional[str] = None) -> List[Connection]:
        connections = list(self._connections.values())
        if user_id:
            connections = [c for c in connections if c.user_id == user_id]
        return connections

    def close(self, session_id: str) -> Optional[Connection]:
        """Close the session and forget the connection. Safe to call twice."""
        connection = self._connections.pop(session_id, None)
        if connection is not None:
            connection.session.close()
        return connection

    def __len__(self) -> int:
        return len(self._connections)

    def clear(self) -> None:
        for session_id in list(self._connections):
            self.close(session_id)


# Global connection registry
session_registry = SessionRegistry()
