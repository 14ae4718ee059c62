"""Mutable state of one match and its final result."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from janggibot.models.board import PlayerSide
from janggibot.models.events import TerminalOutcome, TurnState

if TYPE_CHECKING:
    from janggibot.core.errors import OrchestratorError
    from janggibot.core.metrics import SessionMetrics
    from janggibot.models.actions import ActionCommand
    from janggibot.models.anomaly import AnomalySignal
    from janggibot.models.board import BoardState
    from janggibot.models.events import SessionEvent
    from janggibot.models.observations import BoardObservation


def new_session_id() -> str:
    """Short random session identifier."""
    return uuid.uuid4().hex[:12]


@dataclass
class Session:
    """Live state of one match, owned by a single TurnLoop.

    ``retries`` counts recovery attempts charged to the current turn. It
    never decreases within a turn and is reset when a new turn begins.
    """

    our_side: PlayerSide
    session_id: str = field(default_factory=new_session_id)
    state: TurnState | None = None
    outcome: TerminalOutcome | None = None
    side_to_move: PlayerSide = PlayerSide.BLUE
    turn: int = 0
    retries: int = 0
    last_board: BoardState | None = None
    fingerprint: str | None = None
    latest_sequence: int = -1
    pending_command: ActionCommand | None = None
    resume_state: TurnState | None = None
    pending_signal: AnomalySignal | None = None

    @property
    def our_turn(self) -> bool:
        """Whether it is our side to move."""
        return self.side_to_move == self.our_side

    @property
    def finished(self) -> bool:
        """Whether the session reached TERMINAL."""
        return self.state == TurnState.TERMINAL

    def confirm(self, observation: BoardObservation) -> None:
        """Adopt ``observation`` as the last confirmed board."""
        self.last_board = observation.board.with_side_to_move(self.side_to_move)
        self.fingerprint = observation.fingerprint

    def reset_retries(self) -> None:
        """Start a fresh retry budget for a new turn."""
        self.retries = 0
        self.resume_state = None
        self.pending_signal = None


@dataclass(frozen=True)
class SessionResult:
    """What run() reports once the session is over."""

    session_id: str
    outcome: TerminalOutcome
    turns: int
    metrics: SessionMetrics
    events: tuple[SessionEvent, ...]
    error: OrchestratorError | None = None

    @property
    def aborted(self) -> bool:
        """True for TERMINAL(ABORTED)."""
        return self.outcome == TerminalOutcome.ABORTED

    @property
    def states(self) -> list[TurnState]:
        """States entered, in order."""
        return [event.to_state for event in self.events]

    def to_dict(self) -> dict[str, object]:
        """JSON-ready summary."""
        return {
            "session_id": self.session_id,
            "outcome": self.outcome.value,
            "turns": self.turns,
            "events": len(self.events),
            "metrics": self.metrics.model_dump(mode="json"),
            "error": self.error.summary() if self.error else None,
        }
