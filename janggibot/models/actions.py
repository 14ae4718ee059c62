"""Action models for device input.

An ActionCommand is the unit the controller injects: an ordered input
sequence plus, for moves, the board expected once the move lands.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, Field, model_validator

from janggibot.models.board import BoardState, Move, Square


class Point(BaseModel):
    """A point in screen coordinates."""

    x: Annotated[int, Field(ge=0)] = Field(..., description="X coordinate")
    y: Annotated[int, Field(ge=0)] = Field(..., description="Y coordinate")

    model_config = {"frozen": True}


class InputKind(StrEnum):
    """Device input primitives."""

    TAP = "tap"
    DRAG = "drag"


class InputAction(BaseModel):
    """A single tap or drag.

    Targets are either board squares, resolved by the controller through its
    calibrated geometry, or absolute screen points.
    """

    kind: InputKind
    square: Square | None = Field(default=None, description="Tap/drag start square")
    point: Point | None = Field(default=None, description="Tap/drag start point")
    end_square: Square | None = Field(default=None, description="Drag end square")
    end_point: Point | None = Field(default=None, description="Drag end point")
    duration_ms: Annotated[int, Field(ge=0)] = Field(default=0, description="Drag duration")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_targets(self) -> InputAction:
        if (self.square is None) == (self.point is None):
            raise ValueError("Input needs exactly one of square or point")
        if self.kind == InputKind.DRAG and (self.end_square is None) == (self.end_point is None):
            raise ValueError("Drag needs exactly one of end_square or end_point")
        return self

    @classmethod
    def tap_square(cls, square: Square) -> InputAction:
        """Tap the centre of a board square."""
        return cls(kind=InputKind.TAP, square=square)

    @classmethod
    def tap_point(cls, x: int, y: int) -> InputAction:
        """Tap a screen point."""
        return cls(kind=InputKind.TAP, point=Point(x=x, y=y))

    @classmethod
    def drag_squares(cls, start: Square, end: Square, duration_ms: int = 150) -> InputAction:
        """Drag from one square to another."""
        return cls(kind=InputKind.DRAG, square=start, end_square=end, duration_ms=duration_ms)


class CommandPurpose(StrEnum):
    """Why a command is injected."""

    MOVE = "move"
    DISMISS = "dismiss"
    START_FLOW = "start_flow"


class ActionCommand(BaseModel):
    """An immutable, fully-resolved input command."""

    purpose: CommandPurpose = Field(default=CommandPurpose.MOVE)
    move: Move | None = Field(default=None, description="Engine-chosen move")
    inputs: tuple[InputAction, ...] = Field(..., min_length=1, description="Ordered inputs")
    expected_board: BoardState | None = Field(
        default=None, description="Board expected after the move lands"
    )
    description: str | None = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_move(self) -> ActionCommand:
        if self.purpose == CommandPurpose.MOVE and (
            self.move is None or self.expected_board is None
        ):
            raise ValueError("Move commands need a move and an expected board")
        return self

    @classmethod
    def for_move(
        cls,
        board: BoardState,
        move: Move,
        *,
        drag: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> ActionCommand:
        """Build a move command against the last confirmed board.

        Raises:
            IllegalBoardOperation: If the move cannot be applied to ``board``.
        """
        expected = board.apply_move(move)
        if drag:
            inputs: tuple[InputAction, ...] = (
                InputAction.drag_squares(move.from_square, move.to_square),
            )
        else:
            inputs = (
                InputAction.tap_square(move.from_square),
                InputAction.tap_square(move.to_square),
            )
        return cls(
            purpose=CommandPurpose.MOVE,
            move=move,
            inputs=inputs,
            expected_board=expected,
            description=f"move {move}",
            metadata=metadata or {},
        )

    @classmethod
    def dismiss(cls, point: Point, template_id: str) -> ActionCommand:
        """Build a tap that dismisses an overlay."""
        return cls(
            purpose=CommandPurpose.DISMISS,
            inputs=(InputAction.tap_point(point.x, point.y),),
            description=f"dismiss overlay {template_id}",
            metadata={"template_id": template_id},
        )

    @classmethod
    def taps(cls, points: list[Point], description: str | None = None) -> ActionCommand:
        """Build a start-flow command from a list of screen taps."""
        return cls(
            purpose=CommandPurpose.START_FLOW,
            inputs=tuple(InputAction.tap_point(p.x, p.y) for p in points),
            description=description,
        )
