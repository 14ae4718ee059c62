"""Board-to-screen geometry."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, model_validator

from janggibot.models.actions import Point
from janggibot.models.board import BOARD_HEIGHT, BOARD_WIDTH, Square

# Screen layout of the reference 720x1280 client.
DEFAULT_FILE_X: tuple[int, ...] = (40, 125, 200, 280, 360, 440, 520, 600, 680)
DEFAULT_RANK_Y: tuple[int, ...] = (880, 800, 740, 670, 600, 530, 450, 380, 300, 240)


class BoardGeometry(BaseModel):
    """Calibrated grid mapping squares to screen points.

    Anchors are the four board corners (a0, i0, a9, i9) as they should
    appear on screen; recognizers report the anchors they actually see so
    drift can be measured against this grid.
    """

    file_x: tuple[int, ...] = Field(default=DEFAULT_FILE_X)
    rank_y: tuple[int, ...] = Field(default=DEFAULT_RANK_Y)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_lengths(self) -> BoardGeometry:
        if len(self.file_x) != BOARD_WIDTH or len(self.rank_y) != BOARD_HEIGHT:
            raise ValueError(
                f"Geometry needs {BOARD_WIDTH} file and {BOARD_HEIGHT} rank coordinates"
            )
        return self

    def square_to_point(self, square: Square) -> Point:
        """Screen point at the centre of a square."""
        return Point(x=self.file_x[square.file], y=self.rank_y[square.rank])

    @property
    def anchors(self) -> tuple[Point, ...]:
        """Expected screen positions of the four corner intersections."""
        corners = (
            Square(file=0, rank=0),
            Square(file=BOARD_WIDTH - 1, rank=0),
            Square(file=0, rank=BOARD_HEIGHT - 1),
            Square(file=BOARD_WIDTH - 1, rank=BOARD_HEIGHT - 1),
        )
        return tuple(self.square_to_point(c) for c in corners)

    def anchor_deviation(self, observed: tuple[Point, ...] | list[Point]) -> float:
        """Largest distance in pixels between observed and expected anchors."""
        if not observed:
            return 0.0
        return max(
            math.hypot(o.x - e.x, o.y - e.y)
            for o, e in zip(observed, self.anchors, strict=False)
        )

    def shifted(self, dx: int, dy: int) -> BoardGeometry:
        """Return the grid translated by (dx, dy) pixels."""
        return BoardGeometry(
            file_x=tuple(max(0, x + dx) for x in self.file_x),
            rank_y=tuple(max(0, y + dy) for y in self.rank_y),
        )
