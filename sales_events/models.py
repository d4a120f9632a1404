"""
Sales event records and aggregate statistics.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional


@dataclass
class SalesEvent:
    """One persisted suggestion (or a system event such as session end)."""

    user_id: str
    session_id: str
    category: str
    suggestion: str
    transcript_context: str = ""
    confidence: float = 0.0
    feedback: Optional[bool] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "category": self.category,
            "suggestion": self.suggestion,
            "transcript_context": self.transcript_context,
            "confidence": self.confidence,
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "SalesEvent":
        created = row.get("created_at")
        if isinstance(created, str):
            created_at = datetime.fromisoformat(created.replace("Z", "+00:00"))
        else:
            created_at = datetime.now(timezone.utc)
        return cls(
            id=str(row.get("id") or uuid.uuid4()),
            user_id=row.get("user_id") or "",
            session_id=row.get("session_id") or "",
            category=row.get("category") or "",
            suggestion=row.get("suggestion") or "",
            transcript_context=row.get("transcript_context") or "",
            confidence=float(row.get("confidence") or 0.0),
            feedback=row.get("feedback"),
            metadata=row.get("metadata") or {},
            created_at=created_at,
        )


@dataclass
class PerformanceStats:
    total: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    with_positive_feedback: int = 0
    feedback_rate: float = 0.0

    @classmethod
    def from_events(cls, events: Iterable[Dict[str, Any]]) -> "PerformanceStats":
        """Aggregate rows carrying category, confidence and feedback."""
        stats = cls()
        total_confidence = 0.0
        for event in events:
            stats.total += 1
            category = event.get("category") or "unknown"
            stats.by_category[category] = stats.by_category.get(category, 0) + 1
            total_confidence += float(event.get("confidence") or 0.0)
            if event.get("feedback") is True:
                stats.with_positive_feedback += 1
        if stats.total:
            stats.average_confidence = total_confidence / stats.total
            stats.feedback_rate = stats.with_positive_feedback / stats.total
        return stats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "byCategory": dict(self.by_category),
            "averageConfidence": self.average_confidence,
            "withPositiveFeedback": self.with_positive_feedback,
            "feedbackRate": self.feedback_rate,
        }
