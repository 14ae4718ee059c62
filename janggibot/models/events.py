"""Turn-loop states and the events recorded for each transition."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, Field

from janggibot.models.anomaly import AnomalyKind


class TurnState(StrEnum):
    """States of the turn loop."""

    READY = "ready"
    OUR_TURN_THINK = "our_turn_think"
    OUR_TURN_ACT = "our_turn_act"
    OUR_TURN_VERIFY = "our_turn_verify"
    OPP_TURN_WAIT = "opp_turn_wait"
    RECOVERY = "recovery"
    TERMINAL = "terminal"


class TerminalOutcome(StrEnum):
    """Sub-tag of the TERMINAL state."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
    ABORTED = "aborted"


class EventCause(StrEnum):
    """What caused a transition."""

    SESSION_STARTED = "session_started"
    OUR_MOVE = "our_move"
    OPPONENT_MOVE = "opponent_move"
    ENGINE_DECIDED = "engine_decided"
    INJECTED = "injected"
    MATCH = "match"
    MISMATCH = "mismatch"
    INCONCLUSIVE = "inconclusive"
    BOARD_CHANGED = "board_changed"
    ANOMALY = "anomaly"
    STALL = "stall"
    RECOVERED = "recovered"
    GAME_OVER = "game_over"
    RETRIES_EXHAUSTED = "retries_exhausted"
    UNRESOLVED_ANOMALY = "unresolved_anomaly"
    TIMEOUT = "timeout"
    ENGINE_FAULT = "engine_fault"
    COLLABORATOR_FAULT = "collaborator_fault"
    CANCELLED = "cancelled"
    ILLEGAL_TRANSITION = "illegal_transition"


class SessionEvent(BaseModel):
    """Immutable record of one state transition.

    Events of a session form a total order by ``sequence``.
    """

    sequence: Annotated[int, Field(ge=1)]
    session_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    from_state: TurnState | None = Field(default=None)
    to_state: TurnState
    outcome: TerminalOutcome | None = Field(default=None, description="Set for TERMINAL")
    cause: EventCause
    anomaly: AnomalyKind | None = Field(default=None)
    turn: Annotated[int, Field(ge=0)] = 0
    retries: Annotated[int, Field(ge=0)] = 0
    detail: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        """Check if this event entered a terminal state."""
        return self.to_state == TurnState.TERMINAL
