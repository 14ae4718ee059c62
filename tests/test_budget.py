"""Tests for time budgets and deadlines."""

from __future__ import annotations

import pytest

from janggibot.config.loader import PlayMode, TimeConfig
from janggibot.core.budget import Deadline, TimeBudgetManager
from janggibot.models.actions import ActionCommand
from janggibot.models.board import BoardState, Move


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDeadline:
    """Tests for Deadline."""

    def test_remaining_and_expiry(self) -> None:
        clock = FakeClock()
        deadline = Deadline(1.0, clock=clock)

        assert deadline.remaining() == pytest.approx(1.0)
        assert not deadline.expired()
        clock.advance(1.5)
        assert deadline.remaining() == 0.0
        assert deadline.expired()
        assert deadline.stop_requested

    def test_negative_budget_clamped(self) -> None:
        deadline = Deadline(-3.0, clock=FakeClock())
        assert deadline.budget_s == 0.0
        assert deadline.expired()

    def test_request_stop(self) -> None:
        deadline = Deadline(10.0, clock=FakeClock())
        assert not deadline.stop_requested
        deadline.request_stop()
        assert deadline.stop_requested

    def test_best_so_far(self) -> None:
        deadline = Deadline(1.0, clock=FakeClock())
        command = ActionCommand.for_move(BoardState.initial(), Move.parse("a3a4"))

        assert deadline.best_so_far is None
        deadline.offer(command)
        assert deadline.best_so_far == command


class TestTimeBudgetManager:
    """Tests for TimeBudgetManager."""

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [(PlayMode.RAPID, 0.25), (PlayMode.CLASSIC, 1.0)],
    )
    def test_fixed_move_budget(self, mode: PlayMode, expected: float) -> None:
        budget = TimeBudgetManager(mode, 600.0, clock=FakeClock())
        assert budget.move_budget_s == pytest.approx(expected)

    def test_flexible_share_of_remaining(self) -> None:
        budget = TimeBudgetManager(
            PlayMode.FLEXIBLE, 60.0, flexible_moves_to_go=30, clock=FakeClock()
        )
        assert budget.move_budget_s == pytest.approx(2.0)

    def test_flexible_floor(self) -> None:
        budget = TimeBudgetManager(
            PlayMode.FLEXIBLE,
            1.0,
            flexible_moves_to_go=30,
            flexible_min_move_ms=100,
            clock=FakeClock(),
        )
        assert budget.move_budget_s == pytest.approx(0.1)

    def test_deadline_limited_by_session_remaining(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.CLASSIC, 0.4, clock=clock)

        budget.begin_turn()
        clock.advance(0.1)
        deadline = budget.deadline()

        assert deadline.budget_s == pytest.approx(0.3)

    def test_charge_turn(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.CLASSIC, 10.0, clock=clock)

        budget.begin_turn()
        clock.advance(0.5)
        budget.begin_turn()  # already timing
        clock.advance(0.25)
        charged = budget.charge_turn()

        assert charged == pytest.approx(0.75)
        assert budget.session_remaining_s() == pytest.approx(9.25)
        assert budget.turns_charged == 1
        assert not budget.turn_in_progress

    def test_charge_without_turn(self) -> None:
        budget = TimeBudgetManager(PlayMode.CLASSIC, 10.0, clock=FakeClock())
        assert budget.charge_turn() == 0.0
        assert budget.turns_charged == 0

    def test_wait_outside_turn_not_charged(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.CLASSIC, 10.0, clock=clock)
        clock.advance(50.0)
        assert budget.session_remaining_s() == pytest.approx(10.0)

    def test_exhausted_during_turn(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.RAPID, 1.0, clock=clock)

        budget.begin_turn()
        clock.advance(0.6)
        assert budget.move_remaining_s() == 0.0
        assert not budget.exhausted()
        clock.advance(0.5)
        assert budget.exhausted()

    def test_from_config(self) -> None:
        config = TimeConfig(mode=PlayMode.RAPID, session_budget_s=30.0, rapid_move_ms=500)
        budget = TimeBudgetManager.from_config(config, clock=FakeClock())

        assert budget.mode == PlayMode.RAPID
        assert budget.move_budget_s == pytest.approx(0.5)
        assert budget.session_remaining_s() == pytest.approx(30.0)

    def test_increment_credited_for_completed_turn(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.CLASSIC, 10.0, increment_ms=500, clock=clock)

        budget.begin_turn()
        clock.advance(0.75)
        charged = budget.charge_turn(completed=True)

        assert charged == pytest.approx(0.75)
        assert budget.session_remaining_s() == pytest.approx(9.75)

        budget.begin_turn()
        clock.advance(0.25)
        budget.charge_turn()  # aborted turn, no credit
        assert budget.session_remaining_s() == pytest.approx(9.5)

    def test_no_increment_after_budget_spent(self) -> None:
        clock = FakeClock()
        budget = TimeBudgetManager(PlayMode.RAPID, 1.0, increment_ms=2000, clock=clock)

        budget.begin_turn()
        clock.advance(1.5)
        budget.charge_turn(completed=True)

        assert budget.exhausted()
        assert budget.session_remaining_s() == pytest.approx(-0.5)

    def test_increment_from_config(self) -> None:
        clock = FakeClock()
        config = TimeConfig(session_budget_s=5.0, increment_ms=300)
        budget = TimeBudgetManager.from_config(config, clock=clock)

        budget.begin_turn()
        clock.advance(0.1)
        budget.charge_turn(completed=True)

        assert budget.session_remaining_s() == pytest.approx(5.2)
