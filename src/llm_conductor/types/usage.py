"""Usage accounting records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

__all__ = ["UsageRecord", "LimitState"]


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """One committed usage event. Immutable once created."""

    timestamp: datetime
    tokens: int
    backend_id: str
    model_id: str


@dataclass(frozen=True, slots=True)
class LimitState:
    """Snapshot of the ledger. A max of 0 means unlimited."""

    max_tokens: int
    max_requests: int
    used_tokens: int
    used_requests: int
