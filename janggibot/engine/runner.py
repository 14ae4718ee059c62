"""Deadline-bounded engine invocation.

The engine runs on a worker thread so a long search never blocks the turn
loop past its deadline. When the deadline passes the runner requests an
early stop, allows a short grace period, then falls back to the engine's
best-so-far candidate.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING

from janggibot.interfaces.engine import EngineDeadlineError, EngineError, NoLegalActionError

if TYPE_CHECKING:
    from janggibot.core.budget import Deadline
    from janggibot.interfaces.engine import GameEngine
    from janggibot.models.actions import ActionCommand
    from janggibot.models.board import BoardState, PlayerSide

logger = logging.getLogger(__name__)


class EngineRunner:
    """Runs GameEngine.decide on a worker thread under a deadline."""

    def __init__(self, engine: GameEngine, grace_s: float = 0.05) -> None:
        """Initialize the runner.

        Args:
            engine: Engine to invoke.
            grace_s: How long to wait for the engine after requesting
                early stop before using its best-so-far candidate.
        """
        self._engine = engine
        self._grace_s = grace_s
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="engine")
        self._pending: Future[ActionCommand] | None = None

    @property
    def engine(self) -> GameEngine:
        """The wrapped engine."""
        return self._engine

    def decide(self, board: BoardState, side: PlayerSide, deadline: Deadline) -> ActionCommand:
        """Ask the engine for a move, honouring ``deadline``.

        Raises:
            NoLegalActionError: If the engine reports the game is over.
            EngineDeadlineError: If the deadline passed with no candidate.
            EngineError: If the engine faulted.
        """
        if self._pending is not None and not self._pending.done():
            # A previous search overran and is still winding down.
            raise EngineError("Engine is still busy with a previous search")

        future = self._executor.submit(self._engine.decide, board, side, deadline)
        self._pending = future

        try:
            return self._unwrap(future, deadline.remaining())
        except FutureTimeoutError:
            pass

        logger.info(
            "[ENGINE] Deadline reached after %.0fms, requesting early stop",
            deadline.budget_s * 1000,
        )
        deadline.request_stop()
        try:
            return self._unwrap(future, self._grace_s)
        except FutureTimeoutError:
            pass

        best = deadline.best_so_far
        if best is None:
            raise EngineDeadlineError(
                f"Engine returned no candidate within {deadline.budget_s * 1000:.0f}ms"
            )
        logger.warning("[ENGINE] Using best-so-far candidate: %s", best.description)
        return best

    def _unwrap(self, future: Future[ActionCommand], timeout: float) -> ActionCommand:
        try:
            return future.result(timeout=timeout)
        except (FutureTimeoutError, NoLegalActionError, EngineError):
            raise
        except Exception as e:
            raise EngineError(f"Engine fault: {e}") from e

    def close(self) -> None:
        """Stop accepting work; a running search is left to finish on its own."""
        self._executor.shutdown(wait=False, cancel_futures=True)
