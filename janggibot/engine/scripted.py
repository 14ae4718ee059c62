"""Scripted engine that replays a fixed list of moves.

Used with the simulated controller for dry runs and as a deterministic
engine in tests. It performs no search.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from janggibot.interfaces.engine import EngineError, GameEngine, NoLegalActionError
from janggibot.models.actions import ActionCommand
from janggibot.models.board import IllegalBoardOperation, Move

if TYPE_CHECKING:
    from janggibot.core.budget import Deadline
    from janggibot.models.board import BoardState, PlayerSide

logger = logging.getLogger(__name__)


class ScriptedEngine(GameEngine):
    """Plays the next move from a script; reports game over when it runs out."""

    def __init__(self, moves: list[str] | list[Move], *, drag: bool = False) -> None:
        self._moves = [m if isinstance(m, Move) else Move.parse(m) for m in moves]
        self._cursor = 0
        self._drag = drag

    @property
    def remaining(self) -> int:
        """Number of moves left in the script."""
        return len(self._moves) - self._cursor

    def warm_up(self) -> None:
        logger.info(f"[ENGINE] Scripted engine ready with {self.remaining} move(s)")

    def decide(self, board: BoardState, side: PlayerSide, deadline: Deadline) -> ActionCommand:
        """Return the next scripted move as a command against ``board``."""
        if self._cursor >= len(self._moves):
            raise NoLegalActionError("script exhausted")

        move = self._moves[self._cursor]
        try:
            command = ActionCommand.for_move(
                board, move, drag=self._drag, metadata={"side": side.value, "source": "script"}
            )
        except IllegalBoardOperation as e:
            raise EngineError(f"Scripted move {move} does not fit the board: {e}") from e

        self._cursor += 1
        deadline.offer(command)
        logger.debug(f"Scripted move {move} for {side.value} ({self.remaining} left)")
        return command
