"""Tests for the command-line interface."""

from __future__ import annotations

import json
import logging
from argparse import Namespace
from unittest.mock import MagicMock

import pytest

import janggibot.cli as cli
from janggibot.cli import (
    _configure_logging,
    _JSONLogFormatter,
    _load_component,
    build_arg_parser,
    main,
    run_command,
)
from janggibot.cli.options import overrides_from_args
from janggibot.cli.runtime import _create_controller, _create_engine, create_loop
from janggibot.config.loader import Config
from janggibot.controller.adb import AdbController
from janggibot.controller.simulated import SimulatedDevice
from janggibot.core.metrics import SessionMetrics
from janggibot.core.session import SessionResult
from janggibot.engine.scripted import ScriptedEngine
from janggibot.models.board import Formation, PlayerSide, Square
from janggibot.models.events import TerminalOutcome


def _run_args(*extra: str) -> Namespace:
    return build_arg_parser().parse_args(["run", *extra])


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestCLIParser:
    """Argument parsing behavior."""

    def test_parses_run_options(self) -> None:
        args = _run_args(
            "--controller",
            "adb",
            "--serial",
            "emulator-5556",
            "--formation",
            "상마마상",
            "--mode",
            "rapid",
            "--max-retries",
            "3",
            "--start-flow",
        )

        assert args.command == "run"
        assert args.controller == "adb"
        assert args.max_retries == 3
        assert args.start_flow is True
        assert args.log_format == "readable"

    def test_rejects_unknown_mode(self) -> None:
        with pytest.raises(SystemExit):
            _run_args("--mode", "blitz")

    def test_overrides_from_args(self) -> None:
        overrides = overrides_from_args(
            _run_args("--formation", "SANGMA_MASANG", "--max-retries", "2", "--mode", "flexible")
        )

        assert overrides["match"]["formation"] == Formation.SANGMA_MASANG
        assert overrides["orchestrator"]["max_retries"] == 2
        assert overrides["time"]["mode"] == "flexible"
        assert "controller" not in overrides
        config = Config().with_overrides(overrides)
        assert config.orchestrator.max_retries == 2

    def test_invalid_formation(self) -> None:
        with pytest.raises(ValueError):
            overrides_from_args(_run_args("--formation", "상상마마"))


class TestMain:
    """Entry point behavior."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "janggibot" in capsys.readouterr().out

    def test_returns_nonzero_on_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(_args: Namespace) -> int:
            raise RuntimeError("device not found")

        monkeypatch.setattr(cli, "run_command", fail)

        assert main(["run"]) == 1

    def test_run_simulated_session(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("JANGGIBOT_ENV_FILE", raising=False)
        monkeypatch.setattr(cli, "_install_signal_handlers", lambda _loop: None)

        code = run_command(_run_args())

        summary = json.loads(capsys.readouterr().out)
        assert code == 0
        # the scripted engine runs out of moves after five turns
        assert summary["outcome"] == "loss"
        assert summary["turns"] == 5
        assert summary["error"] is None
        assert summary["metrics"]["turns_completed"] == 5

    def test_aborted_session_exit_code(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("JANGGIBOT_ENV_FILE", raising=False)
        monkeypatch.setattr(cli, "_install_signal_handlers", lambda _loop: None)
        loop = MagicMock()
        loop.run.return_value = SessionResult(
            session_id="s1",
            outcome=TerminalOutcome.ABORTED,
            turns=0,
            metrics=SessionMetrics(),
            events=(),
        )
        monkeypatch.setattr(cli, "create_loop", lambda _config: loop)

        assert run_command(_run_args()) == 2

    def test_missing_env_file(self, tmp_path) -> None:
        args = _run_args("--env-file", str(tmp_path / "missing.env"))
        with pytest.raises(FileNotFoundError):
            run_command(args)


class TestRuntimeAssembly:
    """Backend selection from configuration."""

    def test_simulated_controller_for_red(self) -> None:
        config = Config().with_overrides(
            {"match": {"our_side": "red", "formation": "상마상마"}}
        )

        controller = _create_controller(config)

        assert isinstance(controller, SimulatedDevice)
        piece = controller.board.piece_at(Square.parse("h9"))
        assert piece is not None and piece.owner == PlayerSide.RED

    def test_adb_controller(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("janggibot.controller.adb.shutil.which", lambda _path: "/usr/bin/adb")
        config = Config().with_overrides({"controller": {"backend": "adb", "serial": "10.0.0.2"}})

        assert isinstance(_create_controller(config), AdbController)

    def test_engine_from_module_spec(self) -> None:
        config = Config().with_overrides(
            {"engine": {"backend": "janggibot.engine.scripted:ScriptedEngine"}}
        )
        with pytest.raises(TypeError):
            # ScriptedEngine needs its move list
            _create_engine(config)

    def test_scripted_engine(self) -> None:
        config = Config().with_overrides({"engine": {"script": ["a3a4"]}})
        engine = _create_engine(config)
        assert isinstance(engine, ScriptedEngine)
        assert engine.remaining == 1

    def test_create_loop(self) -> None:
        loop = create_loop(Config())
        assert loop.session.our_side == PlayerSide.BLUE


class TestHelpers:
    """Logging and component helpers."""

    def test_load_component(self) -> None:
        engine = _load_component("janggibot.engine.scripted:ScriptedEngine", moves=["a3a4"])
        assert isinstance(engine, ScriptedEngine)

    @pytest.mark.parametrize("spec", ["janggibot.engine.scripted", ":ScriptedEngine", "x:"])
    def test_load_component_rejects_bad_spec(self, spec: str) -> None:
        with pytest.raises(ValueError):
            _load_component(spec)

    def test_json_formatter(self) -> None:
        record = logging.LogRecord(
            "janggibot.core.loop", logging.INFO, __file__, 1, "[TURN %d] ok", (3,), None
        )
        payload = json.loads(_JSONLogFormatter().format(record))

        assert payload["msg"] == "[TURN 3] ok"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "janggibot.core.loop"

    def test_configure_logging_replaces_own_handler(self) -> None:
        root = logging.getLogger()

        _configure_logging("DEBUG", "json")
        _configure_logging("WARNING", "readable")

        ours = [h for h in root.handlers if getattr(h, "_janggibot_handler", False)]
        assert len(ours) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("PIL").level == logging.WARNING
