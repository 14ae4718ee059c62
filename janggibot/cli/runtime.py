"""Assembly of a playable session from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from janggibot.cli.helpers import _load_component
from janggibot.config.loader import ControllerBackend
from janggibot.controller.adb import AdbController
from janggibot.controller.simulated import SimulatedDevice
from janggibot.core.loop import TurnLoop
from janggibot.engine.scripted import ScriptedEngine
from janggibot.models.board import BoardState, PlayerSide
from janggibot.vision.simulated import SimulatedRecognizer

if TYPE_CHECKING:
    from janggibot.config.loader import Config
    from janggibot.interfaces.controller import DeviceController
    from janggibot.interfaces.engine import GameEngine
    from janggibot.interfaces.vision import BoardRecognizer

logger = logging.getLogger(__name__)


def _create_controller(config: Config) -> DeviceController:
    settings = config.controller
    if settings.backend == ControllerBackend.ADB:
        return AdbController(
            settings.serial,
            adb_path=settings.adb_path,
            tap_interval_ms=settings.tap_interval_ms,
        )

    formation = config.match.formation
    if config.match.our_side == PlayerSide.BLUE:
        board = BoardState.initial(blue_formation=formation)
    else:
        board = BoardState.initial(red_formation=formation)
    return SimulatedDevice(board, opponent_replies=settings.opponent_script)


def _create_recognizer(config: Config) -> BoardRecognizer:
    if config.vision.backend == "simulated":
        return SimulatedRecognizer()
    return _load_component(config.vision.backend)


def _create_engine(config: Config) -> GameEngine:
    if config.engine.backend == "scripted":
        return ScriptedEngine(config.engine.script)
    return _load_component(config.engine.backend)


def create_loop(config: Config) -> TurnLoop:
    """Build a TurnLoop with the backends selected in ``config``."""
    controller = _create_controller(config)
    recognizer = _create_recognizer(config)
    engine = _create_engine(config)
    logger.info(
        "[BOOT] controller=%s vision=%s engine=%s formation=%s mode=%s",
        config.controller.backend.value,
        config.vision.backend,
        config.engine.backend,
        config.match.formation.value,
        config.time.mode.value,
    )
    return TurnLoop(controller, recognizer, engine, config)
