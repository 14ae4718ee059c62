"""Search engine interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from janggibot.models.events import TerminalOutcome

if TYPE_CHECKING:
    from janggibot.core.budget import Deadline
    from janggibot.models.actions import ActionCommand
    from janggibot.models.board import BoardState, PlayerSide


class GameEngine(ABC):
    """Abstract interface for choosing moves.

    Engines must honour the deadline: when ``deadline.stop_requested`` is
    set they return their best candidate immediately. Engines that search
    iteratively should publish improving candidates with
    ``deadline.offer(command)`` so a best-so-far move survives an overrun.
    """

    @abstractmethod
    def warm_up(self) -> None:
        """Prepare for the first search, e.g. load tables or spawn a process.

        Raises:
            EngineError: If the engine cannot be made ready.
        """
        ...

    @abstractmethod
    def decide(self, board: BoardState, side: PlayerSide, deadline: Deadline) -> ActionCommand:
        """Choose a move for ``side``.

        Raises:
            NoLegalActionError: If ``side`` has no legal move (game over).
            EngineError: On an internal fault.
        """
        ...


class EngineError(Exception):
    """Error raised when the engine fails."""

    pass


class EngineDeadlineError(EngineError):
    """The deadline passed without any candidate move."""

    pass


class NoLegalActionError(Exception):
    """The side to move has no legal action; the game is over.

    This is a normal termination signal, not an engine fault.
    """

    def __init__(
        self,
        message: str = "no legal action",
        outcome: TerminalOutcome = TerminalOutcome.LOSS,
    ) -> None:
        super().__init__(message)
        self.outcome = outcome
