"""Metrics collection for the turn loop.

This module provides metrics tracking for:
- Think, act and verify timing per turn
- Turn time charged against the session budget
- Recoveries by anomaly kind and their outcome
- Collaborator errors by type

Example:
    >>> metrics = MetricsCollector()
    >>> metrics.record_phase("think", 120.0)
    >>> metrics.record_turn(charged_ms=410.0)
    >>> metrics.get_metrics().turns_completed
    1
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PHASES = ("think", "act", "verify")


class SessionMetrics(BaseModel):
    """Immutable snapshot of session metrics.

    Attributes:
        turns_completed: Our turns confirmed by verification.
        avg_think_time_ms: Average engine time.
        avg_act_time_ms: Average injection time.
        avg_verify_time_ms: Average verification time.
        charged_time_ms: Total time deducted from the session budget.
        recoveries_total: Recovery attempts.
        recoveries_resolved: Attempts whose corrective action succeeded.
        recoveries_by_kind: Attempts per anomaly kind.
        errors_by_type: Collaborator errors per exception class.
        events_dropped: Events the publisher could not queue.
        started_at: When the session started.
    """

    turns_completed: int = Field(default=0, ge=0)
    avg_think_time_ms: float = Field(default=0.0, ge=0.0)
    avg_act_time_ms: float = Field(default=0.0, ge=0.0)
    avg_verify_time_ms: float = Field(default=0.0, ge=0.0)
    charged_time_ms: float = Field(default=0.0, ge=0.0)

    recoveries_total: int = Field(default=0, ge=0)
    recoveries_resolved: int = Field(default=0, ge=0)
    recoveries_by_kind: dict[str, int] = Field(default_factory=dict)
    errors_by_type: dict[str, int] = Field(default_factory=dict)
    events_dropped: int = Field(default=0, ge=0)

    started_at: datetime | None = Field(default=None)

    model_config = {"frozen": True}

    @property
    def recovery_success_rate(self) -> float:
        """Share of recoveries whose corrective action succeeded."""
        if self.recoveries_total == 0:
            return 1.0
        return self.recoveries_resolved / self.recoveries_total


@dataclass
class _TimingStats:
    """Internal helper for tracking timing statistics."""

    total_ms: float = 0.0
    count: int = 0

    def record(self, duration_ms: float) -> None:
        self.total_ms += duration_ms
        self.count += 1

    @property
    def average_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count


class MetricsCollector:
    """Collects metrics during a session. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phases = {phase: _TimingStats() for phase in PHASES}
        self._turns = 0
        self._charged_ms = 0.0
        self._recoveries_resolved = 0
        self._recoveries_by_kind: dict[str, int] = {}
        self._errors_by_type: dict[str, int] = {}
        self._events_dropped = 0
        self._started_at: datetime | None = None

    def start(self) -> None:
        """Mark the session start."""
        with self._lock:
            self._started_at = datetime.now()

    def record_phase(self, phase: str, duration_ms: float) -> None:
        """Record the duration of a think, act or verify step."""
        if phase not in self._phases:
            raise ValueError(f"Unknown phase: {phase}")
        with self._lock:
            self._phases[phase].record(duration_ms)

    def record_turn(self, charged_ms: float) -> None:
        """Record a confirmed turn and the time charged for it."""
        with self._lock:
            self._turns += 1
            self._charged_ms += charged_ms

    def record_charge(self, charged_ms: float) -> None:
        """Record time charged for a turn that did not complete."""
        with self._lock:
            self._charged_ms += charged_ms

    def record_recovery(self, kind: str, resolved: bool) -> None:
        """Record one recovery attempt."""
        with self._lock:
            self._recoveries_by_kind[kind] = self._recoveries_by_kind.get(kind, 0) + 1
            if resolved:
                self._recoveries_resolved += 1

    def record_error(self, error_type: str) -> None:
        """Record a collaborator error by class name."""
        with self._lock:
            self._errors_by_type[error_type] = self._errors_by_type.get(error_type, 0) + 1

    def set_events_dropped(self, count: int) -> None:
        """Update the dropped-event counter from the publisher."""
        with self._lock:
            self._events_dropped = count

    def get_metrics(self) -> SessionMetrics:
        """Get a snapshot of all current metrics."""
        with self._lock:
            return SessionMetrics(
                turns_completed=self._turns,
                avg_think_time_ms=self._phases["think"].average_ms,
                avg_act_time_ms=self._phases["act"].average_ms,
                avg_verify_time_ms=self._phases["verify"].average_ms,
                charged_time_ms=self._charged_ms,
                recoveries_total=sum(self._recoveries_by_kind.values()),
                recoveries_resolved=self._recoveries_resolved,
                recoveries_by_kind=dict(self._recoveries_by_kind),
                errors_by_type=dict(self._errors_by_type),
                events_dropped=self._events_dropped,
                started_at=self._started_at,
            )
