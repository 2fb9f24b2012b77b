"""
Resolution Context for latebind.

One context per resolve pass: an execution id for correlating log records
and the timings of the pass phases.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ResolutionContext:
    """
    Pass-scoped context.

    Provides:
    - Unique execution ID for tracing
    - Phase timings ("pipelines", "actions")
    - Counts filled in when the pass settles
    """

    execution_id: UUID = field(default_factory=uuid4)
    started_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None

    incremental: bool = False
    binding_count: int = 0
    suspended: bool = False

    phase_timings: dict[str, float] = field(default_factory=dict)

    @property
    def short_id(self) -> str:
        return str(self.execution_id)[:8]

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the pass started (or until it completed)."""
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds() * 1000

    def record_timing(self, phase: str, duration_ms: float) -> None:
        self.phase_timings[phase] = duration_ms

    def mark_completed(self) -> None:
        self.completed_at = _utc_now()

    def to_audit_dict(self) -> dict[str, Any]:
        """Generate audit record for storage."""
        return {
            "execution_id": str(self.execution_id),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.elapsed_ms,
            "incremental": self.incremental,
            "binding_count": self.binding_count,
            "suspended": self.suspended,
            "phase_timings": dict(self.phase_timings),
        }
