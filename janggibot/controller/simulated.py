"""In-process simulated game client.

SimulatedDevice keeps a real board, renders it to a Pillow image on every
capture and interprets taps the way the game client does: the first tap
selects a piece, the second moves it. Scripted opponent replies are played
a configurable number of captures after our move lands.

Frames carry the true board in ``metadata["board"]`` so SimulatedRecognizer
can read it back without a recognition model.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime

from PIL import Image, ImageDraw

from janggibot.interfaces.controller import (
    CompletionSignal,
    DeviceController,
    DeviceUnavailableError,
    Frame,
    InjectionFailedError,
)
from janggibot.models.actions import ActionCommand, CommandPurpose, InputAction, InputKind, Point
from janggibot.models.board import BoardState, Move, PlayerSide, Square
from janggibot.models.geometry import BoardGeometry
from janggibot.models.observations import GameResult

logger = logging.getLogger(__name__)

SCREEN_SIZE = (720, 1280)
TAP_TOLERANCE_PX = 30

_SIDE_COLORS = {PlayerSide.BLUE: (40, 90, 200), PlayerSide.RED: (200, 40, 40)}
_BOARD_COLOR = (222, 184, 135)


def render_board(
    board: BoardState,
    geometry: BoardGeometry,
    overlay: tuple[int, int, int, int] | None = None,
) -> Image.Image:
    """Render a board as seen on the client screen."""
    image = Image.new("RGB", SCREEN_SIZE, (30, 30, 30))
    draw = ImageDraw.Draw(image)
    left, right = min(geometry.file_x), max(geometry.file_x)
    top, bottom = min(geometry.rank_y), max(geometry.rank_y)
    draw.rectangle((left - 30, top - 30, right + 30, bottom + 30), fill=_BOARD_COLOR)
    for x in geometry.file_x:
        draw.line((x, top, x, bottom), fill=(0, 0, 0), width=2)
    for y in geometry.rank_y:
        draw.line((left, y, right, y), fill=(0, 0, 0), width=2)

    for file in range(len(geometry.file_x)):
        for rank in range(len(geometry.rank_y)):
            square = Square(file=file, rank=rank)
            piece = board.piece_at(square)
            if piece is None:
                continue
            center = geometry.square_to_point(square)
            radius = 26
            draw.ellipse(
                (center.x - radius, center.y - radius, center.x + radius, center.y + radius),
                fill=_SIDE_COLORS[piece.owner],
                outline=(255, 255, 255),
            )
            label = piece.kind.value[0].upper()
            draw.text((center.x - 4, center.y - 6), label, fill=(255, 255, 255))

    if overlay is not None:
        x, y, w, h = overlay
        draw.rectangle((x, y, x + w, y + h), fill=(250, 250, 250), outline=(0, 0, 0), width=3)
    return image


class SimulatedDevice(DeviceController):
    """A DeviceController backed by an in-memory board."""

    def __init__(
        self,
        board: BoardState,
        *,
        screen_geometry: BoardGeometry | None = None,
        opponent_replies: list[str] | None = None,
        reply_after_captures: int = 1,
        render: bool = True,
    ) -> None:
        """Initialize the simulated device.

        Args:
            board: Board shown at start.
            screen_geometry: Where the board really is on screen.
            opponent_replies: Moves the opponent plays, in order. Once they
                run out the opponent resigns.
            reply_after_captures: Captures between our move and the reply.
            render: Whether to render Pillow images for frames.
        """
        self._board = board
        self._screen_geometry = screen_geometry or BoardGeometry()
        self._calibrated = BoardGeometry()
        self._replies = [Move.parse(m) for m in (opponent_replies or [])]
        self._reply_after = reply_after_captures
        self._reply_countdown: int | None = None
        self._render = render
        self._sequence = 0
        self._selected: Square | None = None
        self._overlay: tuple[str, tuple[int, int, int, int], Point] | None = None
        self._result: GameResult | None = None
        self._connected = True
        self._attached = False
        self.injected: list[ActionCommand] = []

    # Test and demo hooks

    @property
    def board(self) -> BoardState:
        """Board currently shown."""
        return self._board

    def show_overlay(
        self, template_id: str, region: tuple[int, int, int, int], dismiss: Point
    ) -> None:
        """Show a dialog that blocks board taps until dismissed."""
        self._overlay = (template_id, region, dismiss)

    def move_screen(self, geometry: BoardGeometry) -> None:
        """Move the board on screen, e.g. after a layout change."""
        self._screen_geometry = geometry

    def disconnect(self) -> None:
        """Make the device unreachable."""
        self._connected = False

    @property
    def attached(self) -> bool:
        """Whether connect() has succeeded."""
        return self._attached

    # DeviceController

    def connect(self, timeout: float) -> None:
        if not self._connected:
            raise DeviceUnavailableError("Simulated device disconnected")
        self._attached = True
        logger.info("Simulated device attached")

    @property
    def geometry(self) -> BoardGeometry:
        return self._calibrated

    def calibrate(self, geometry: BoardGeometry) -> None:
        logger.info("Simulated device calibrated")
        self._calibrated = geometry

    def capture(self, timeout: float) -> Frame:
        if not self._connected:
            raise DeviceUnavailableError("Simulated device disconnected")

        # Our move stays visible for ``reply_after_captures`` frames first.
        if self._reply_countdown is not None:
            if self._reply_countdown <= 0:
                self._reply_countdown = None
                self._play_reply()
            else:
                self._reply_countdown -= 1

        self._sequence += 1
        image = None
        if self._render:
            overlay_region = self._overlay[1] if self._overlay else None
            image = render_board(self._board, self._screen_geometry, overlay_region)
        return Frame(
            sequence=self._sequence,
            captured_at=datetime.now(),
            image=image,
            metadata={
                "board": self._board,
                "anchors": self._screen_geometry.anchors,
                "geometry": self._screen_geometry,
                "game_result": self._result,
                "overlay": self._overlay[0] if self._overlay else None,
            },
        )

    def inject(self, command: ActionCommand, timeout: float) -> CompletionSignal:
        if not self._connected:
            raise DeviceUnavailableError("Simulated device disconnected")

        start = time.monotonic()
        self.injected.append(command)
        on_board = command.purpose == CommandPurpose.MOVE
        for action in command.inputs:
            self._apply_input(action, on_board)
        return CompletionSignal(command, (time.monotonic() - start) * 1000)

    # Internals

    def _resolve(self, square: Square | None, point: Point | None) -> Point:
        if point is not None:
            return point
        assert square is not None
        return self._calibrated.square_to_point(square)

    def _square_at(self, point: Point) -> Square | None:
        best: tuple[float, Square] | None = None
        for file, x in enumerate(self._screen_geometry.file_x):
            for rank, y in enumerate(self._screen_geometry.rank_y):
                dist = math.hypot(point.x - x, point.y - y)
                if dist <= TAP_TOLERANCE_PX and (best is None or dist < best[0]):
                    best = (dist, Square(file=file, rank=rank))
        return best[1] if best else None

    def _apply_input(self, action: InputAction, on_board: bool) -> None:
        start = self._resolve(action.square, action.point)
        if action.kind == InputKind.DRAG:
            end = self._resolve(action.end_square, action.end_point)
            self._tap(start, on_board)
            self._tap(end, on_board)
        else:
            self._tap(start, on_board)

    def _tap(self, point: Point, on_board: bool) -> None:
        if self._overlay is not None:
            template_id, _region, dismiss = self._overlay
            if math.hypot(point.x - dismiss.x, point.y - dismiss.y) <= TAP_TOLERANCE_PX:
                logger.info(f"Simulated overlay {template_id} dismissed")
                self._overlay = None
            return
        if not on_board:
            return

        square = self._square_at(point)
        if square is None:
            raise InjectionFailedError(f"Tap at ({point.x}, {point.y}) hit no square")

        if self._selected is None:
            if self._board.piece_at(square) is not None:
                self._selected = square
            return

        move = Move(from_square=self._selected, to_square=square)
        self._selected = None
        if move.from_square == move.to_square:
            return
        self._board = self._board.apply_move(move)
        logger.debug(f"Simulated board applied {move}")
        self._reply_countdown = self._reply_after

    def _play_reply(self) -> None:
        if not self._replies:
            logger.info("Simulated opponent resigns")
            self._result = GameResult.WIN
            return
        move = self._replies.pop(0)
        self._board = self._board.apply_move(move)
        logger.debug(f"Simulated opponent played {move}")
