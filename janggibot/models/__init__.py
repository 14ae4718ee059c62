"""Shared data models for janggibot.

All models use Pydantic for validation and are frozen.
"""

from janggibot.models.actions import ActionCommand, CommandPurpose, InputAction, InputKind, Point
from janggibot.models.anomaly import AnomalyKind, AnomalySignal
from janggibot.models.board import (
    BoardDiff,
    BoardState,
    Formation,
    Move,
    Piece,
    PieceKind,
    PlayerSide,
    Square,
)
from janggibot.models.events import EventCause, SessionEvent, TerminalOutcome, TurnState
from janggibot.models.geometry import BoardGeometry
from janggibot.models.observations import BoardObservation, GameResult

__all__ = [
    "ActionCommand",
    "AnomalyKind",
    "AnomalySignal",
    "BoardDiff",
    "BoardGeometry",
    "BoardObservation",
    "BoardState",
    "CommandPurpose",
    "EventCause",
    "Formation",
    "GameResult",
    "InputAction",
    "InputKind",
    "Move",
    "Piece",
    "PieceKind",
    "PlayerSide",
    "Point",
    "SessionEvent",
    "Square",
    "TerminalOutcome",
    "TurnState",
]
