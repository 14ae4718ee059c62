"""Recognized board observations."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, Field

from janggibot.models.actions import Point
from janggibot.models.board import BoardState


class GameResult(StrEnum):
    """Result screens the recognizer can report."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class BoardObservation(BaseModel):
    """Immutable snapshot produced by the recognizer.

    ``sequence`` is the capture sequence number of the source frame and
    increases monotonically; the orchestrator refuses to act on an
    observation older than the newest one it has seen.
    """

    board: BoardState = Field(..., description="Recognized placement")
    sequence: Annotated[int, Field(ge=0)] = Field(..., description="Source frame sequence")
    captured_at: datetime = Field(default_factory=datetime.now)
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        ..., description="Recognition confidence"
    )
    anchors: tuple[Point, ...] = Field(
        default=(), description="Board corner anchors found in the frame"
    )
    game_result: GameResult | None = Field(
        default=None, description="Set when a result screen is showing"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def fingerprint(self) -> str:
        """Fingerprint of the recognized placement."""
        return self.board.fingerprint

    def is_confident(self, threshold: float) -> bool:
        """Check confidence against a threshold (inclusive)."""
        return self.confidence >= threshold
