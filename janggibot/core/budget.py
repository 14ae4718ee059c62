"""Session and per-move time budgets.

The manager keeps two clocks for a session: the cumulative session budget
and the per-move budget of the play mode. Only our own turns are charged:
think, act and verify time, including any recovery inside the turn. Each
confirmed move credits the configured increment back to the session.

Example:
    >>> budget = TimeBudgetManager(PlayMode.CLASSIC, session_budget_s=600)
    >>> budget.begin_turn()
    >>> deadline = budget.deadline()  # min(1.0s, remaining session)
    >>> ...
    >>> elapsed = budget.charge_turn()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from janggibot.config.loader import PlayMode

if TYPE_CHECKING:
    from janggibot.config.loader import TimeConfig
    from janggibot.models.actions import ActionCommand

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class Deadline:
    """A point in time by which the engine must answer.

    Carries the early-stop flag and the engine's best candidate so far.
    Thread-safe: the engine updates it from its worker thread while the
    orchestrator waits.
    """

    def __init__(self, budget_s: float, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.budget_s = max(0.0, budget_s)
        self.started_at = clock()
        self.expires_at = self.started_at + self.budget_s
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._best: ActionCommand | None = None

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        """Check whether the deadline has passed."""
        return self._clock() >= self.expires_at

    def request_stop(self) -> None:
        """Ask the engine to return its best candidate now."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        """True once early stop was requested or the deadline passed."""
        return self._stop.is_set() or self.expired()

    def offer(self, command: ActionCommand) -> None:
        """Record the engine's current best candidate."""
        with self._lock:
            self._best = command

    @property
    def best_so_far(self) -> ActionCommand | None:
        """Most recent candidate offered by the engine."""
        with self._lock:
            return self._best

    def __repr__(self) -> str:
        return f"Deadline(budget={self.budget_s:.3f}s, remaining={self.remaining():.3f}s)"


class TimeBudgetManager:
    """Tracks remaining session time and issues per-move deadlines."""

    def __init__(
        self,
        mode: PlayMode,
        session_budget_s: float,
        *,
        rapid_move_ms: int = 250,
        classic_move_ms: int = 1000,
        flexible_moves_to_go: int = 30,
        flexible_min_move_ms: int = 100,
        increment_ms: int = 0,
        clock: Clock = time.monotonic,
    ) -> None:
        self._mode = mode
        self._session_budget_s = session_budget_s
        self._session_remaining_s = session_budget_s
        self._rapid_move_s = rapid_move_ms / 1000
        self._classic_move_s = classic_move_ms / 1000
        self._flexible_moves_to_go = flexible_moves_to_go
        self._flexible_min_move_s = flexible_min_move_ms / 1000
        self._increment_s = increment_ms / 1000
        self._clock = clock
        self._turn_started: float | None = None
        self._turns_charged = 0

    @classmethod
    def from_config(cls, config: TimeConfig, clock: Clock = time.monotonic) -> TimeBudgetManager:
        """Build a manager from the time section of the configuration."""
        return cls(
            config.mode,
            config.session_budget_s,
            rapid_move_ms=config.rapid_move_ms,
            classic_move_ms=config.classic_move_ms,
            flexible_moves_to_go=config.flexible_moves_to_go,
            flexible_min_move_ms=config.flexible_min_move_ms,
            increment_ms=config.increment_ms,
            clock=clock,
        )

    @property
    def mode(self) -> PlayMode:
        """Current play mode."""
        return self._mode

    @property
    def clock(self) -> Clock:
        """Clock used for all measurements."""
        return self._clock

    @property
    def turns_charged(self) -> int:
        """Number of turns deducted so far."""
        return self._turns_charged

    @property
    def move_budget_s(self) -> float:
        """Per-move budget of the play mode."""
        if self._mode == PlayMode.RAPID:
            return self._rapid_move_s
        if self._mode == PlayMode.CLASSIC:
            return self._classic_move_s
        share = self._session_remaining_s / self._flexible_moves_to_go
        return max(share, self._flexible_min_move_s)

    @property
    def turn_in_progress(self) -> bool:
        """Whether a turn is currently being timed."""
        return self._turn_started is not None

    def turn_elapsed_s(self) -> float:
        """Wall time consumed by the turn in progress."""
        if self._turn_started is None:
            return 0.0
        return self._clock() - self._turn_started

    def session_remaining_s(self) -> float:
        """Session budget left, including the turn in progress."""
        return self._session_remaining_s - self.turn_elapsed_s()

    def move_remaining_s(self) -> float:
        """Per-move time left for the turn in progress."""
        left = self.move_budget_s - self.turn_elapsed_s()
        return max(0.0, min(left, self.session_remaining_s()))

    def exhausted(self) -> bool:
        """True once the session budget has reached zero."""
        return self.session_remaining_s() <= 0

    def begin_turn(self) -> None:
        """Start timing one of our turns. No-op if already timing."""
        if self._turn_started is None:
            self._turn_started = self._clock()

    def deadline(self) -> Deadline:
        """Deadline for the engine: min(per-move budget, remaining session)."""
        budget = min(self.move_budget_s, max(0.0, self.session_remaining_s()))
        logger.debug(f"Engine deadline {budget * 1000:.0f}ms (mode={self._mode.value})")
        return Deadline(budget, clock=self._clock)

    def charge_turn(self, *, completed: bool = False) -> float:
        """Deduct the turn's wall time from the session budget.

        Args:
            completed: Whether our move was confirmed. A confirmed move made
                within the remaining budget is credited the increment.

        Returns:
            Seconds charged (0.0 if no turn was being timed).
        """
        if self._turn_started is None:
            return 0.0
        elapsed = self._clock() - self._turn_started
        self._turn_started = None
        self._session_remaining_s -= elapsed
        if completed and self._session_remaining_s > 0:
            self._session_remaining_s += self._increment_s
        self._turns_charged += 1
        logger.debug(
            f"Charged {elapsed * 1000:.0f}ms, session remaining {self._session_remaining_s:.2f}s"
        )
        return elapsed
