"""Append-only log of committed usage."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from llm_conductor.types import UsageRecord

__all__ = ["AnalyticsRecorder"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsRecorder:
    """Collects one UsageRecord per committed backend call."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utcnow
        self._history: list[UsageRecord] = []

    def record_request(self, tokens: int, backend_id: str, model_id: str) -> UsageRecord:
        record = UsageRecord(
            timestamp=self._clock(),
            tokens=tokens,
            backend_id=backend_id,
            model_id=model_id,
        )
        self._history.append(record)
        return record

    @property
    def request_count(self) -> int:
        return len(self._history)

    @property
    def total_tokens_used(self) -> int:
        return sum(r.tokens for r in self._history)

    def get_analytics(self) -> dict[str, Any]:
        count = self.request_count
        total = self.total_tokens_used
        average = round(total / count, 2) if count else 0
        return {
            "request_count": count,
            "total_tokens_used": total,
            "average_tokens_per_request": average,
            "token_usage_history": list(self._history),
        }

    def get_usage_by_period(self, start: datetime, end: Optional[datetime] = None) -> dict[str, Any]:
        """Usage between ``start`` and ``end`` (defaults to now), both inclusive."""
        end = end or self._clock()
        records = [r for r in self._history if start <= r.timestamp <= end]
        return {
            "total_tokens": sum(r.tokens for r in records),
            "request_count": len(records),
            "usage_history": records,
        }

    def reset(self) -> None:
        self._history = []
