"""Session-terminating orchestrator errors."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from janggibot.interfaces.controller import Frame
    from janggibot.models.anomaly import AnomalySignal
    from janggibot.models.events import SessionEvent
    from janggibot.models.observations import BoardObservation


class OrchestratorErrorKind(StrEnum):
    """Why a session was aborted."""

    RETRIES_EXHAUSTED = "retries_exhausted"
    ILLEGAL_TRANSITION = "illegal_transition"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    ENGINE_FAULT = "engine_fault"
    COLLABORATOR_FAULT = "collaborator_fault"
    UNRESOLVED_ANOMALY = "unresolved_anomaly"


class OrchestratorError(Exception):
    """Error that ends a session in TERMINAL(ABORTED).

    Carries the diagnostic trail collected at the time of the abort: the
    most recent events, frames and observations, oldest first.
    """

    def __init__(
        self,
        kind: OrchestratorErrorKind,
        reason: str,
        *,
        anomaly: AnomalySignal | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"{kind.value}: {reason}")
        self.kind = kind
        self.reason = reason
        self.anomaly = anomaly
        self.cause = cause
        self.events: list[SessionEvent] = []
        self.frames: list[Frame] = []
        self.observations: list[BoardObservation] = []

    def attach_trail(
        self,
        events: list[SessionEvent],
        frames: list[Frame],
        observations: list[BoardObservation],
    ) -> None:
        """Attach the diagnostic trail."""
        self.events = list(events)
        self.frames = list(frames)
        self.observations = list(observations)

    def summary(self) -> dict[str, object]:
        """JSON-ready description for logs and CLI output."""
        return {
            "kind": self.kind.value,
            "reason": self.reason,
            "anomaly": self.anomaly.kind.value if self.anomaly else None,
            "cause": f"{type(self.cause).__name__}: {self.cause}" if self.cause else None,
            "events": [event.sequence for event in self.events],
            "frames": [frame.sequence for frame in self.frames],
            "observations": [obs.sequence for obs in self.observations],
        }
