"""Tests for the engine runner and scripted engine."""

from __future__ import annotations

import threading

import pytest

from janggibot.core.budget import Deadline
from janggibot.engine.runner import EngineRunner
from janggibot.engine.scripted import ScriptedEngine
from janggibot.interfaces.engine import (
    EngineDeadlineError,
    EngineError,
    GameEngine,
    NoLegalActionError,
)
from janggibot.models.actions import ActionCommand
from janggibot.models.board import BoardState, Move, PlayerSide


class SlowEngine(GameEngine):
    """Offers a candidate, then blocks until released."""

    def __init__(self, offer: bool = True) -> None:
        self.offer = offer
        self.release = threading.Event()

    def warm_up(self) -> None:
        pass

    def decide(self, board: BoardState, side: PlayerSide, deadline: Deadline) -> ActionCommand:
        if self.offer:
            deadline.offer(ActionCommand.for_move(board, Move.parse("e3e4")))
        self.release.wait(timeout=5)
        return ActionCommand.for_move(board, Move.parse("a3a4"))


class BrokenEngine(GameEngine):
    """Raises an arbitrary error."""

    def warm_up(self) -> None:
        pass

    def decide(self, board: BoardState, side: PlayerSide, deadline: Deadline) -> ActionCommand:
        raise KeyError("transposition table")


class TestScriptedEngine:
    """Tests for ScriptedEngine."""

    def test_plays_script_in_order(self) -> None:
        engine = ScriptedEngine(["a3a4", "c3c4"])
        board = BoardState.initial()
        deadline = Deadline(1.0)

        first = engine.decide(board, PlayerSide.BLUE, deadline)
        second = engine.decide(first.expected_board, PlayerSide.BLUE, deadline)

        assert first.move == Move.parse("a3a4")
        assert second.move == Move.parse("c3c4")
        assert deadline.best_so_far == second
        assert engine.remaining == 0

    def test_warm_up(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("INFO", logger="janggibot.engine.scripted"):
            ScriptedEngine(["a3a4", "c3c4"]).warm_up()
        assert "2 move(s)" in caplog.text

    def test_exhausted_script(self) -> None:
        engine = ScriptedEngine([])
        with pytest.raises(NoLegalActionError):
            engine.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(1.0))

    def test_move_not_fitting_board(self) -> None:
        engine = ScriptedEngine(["a4a5"])
        with pytest.raises(EngineError, match="does not fit"):
            engine.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(1.0))
        assert engine.remaining == 1


class TestEngineRunner:
    """Tests for EngineRunner."""

    def test_returns_engine_answer(self) -> None:
        runner = EngineRunner(ScriptedEngine(["a3a4"]))
        try:
            command = runner.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(1.0))
        finally:
            runner.close()
        assert command.move == Move.parse("a3a4")

    def test_best_so_far_after_overrun(self) -> None:
        engine = SlowEngine()
        runner = EngineRunner(engine, grace_s=0.01)
        deadline = Deadline(0.05)
        try:
            command = runner.decide(BoardState.initial(), PlayerSide.BLUE, deadline)
        finally:
            engine.release.set()
            runner.close()

        assert command.move == Move.parse("e3e4")
        assert deadline.stop_requested

    def test_no_candidate_before_deadline(self) -> None:
        engine = SlowEngine(offer=False)
        runner = EngineRunner(engine, grace_s=0.01)
        try:
            with pytest.raises(EngineDeadlineError):
                runner.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(0.05))
        finally:
            engine.release.set()
            runner.close()

    def test_fault_is_wrapped(self) -> None:
        runner = EngineRunner(BrokenEngine())
        try:
            with pytest.raises(EngineError, match="Engine fault"):
                runner.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(1.0))
        finally:
            runner.close()

    def test_no_legal_action_passes_through(self) -> None:
        runner = EngineRunner(ScriptedEngine([]))
        try:
            with pytest.raises(NoLegalActionError):
                runner.decide(BoardState.initial(), PlayerSide.BLUE, Deadline(1.0))
        finally:
            runner.close()
