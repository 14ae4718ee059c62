"""Android Debug Bridge controller.

Captures with ``adb exec-out screencap -p`` and injects with
``adb shell input tap|swipe``. Each subprocess call is bounded by the
timeout supplied by the orchestrator.
"""

from __future__ import annotations

import io
import logging
import shutil
import subprocess
import time
from datetime import datetime

from PIL import Image, UnidentifiedImageError

from janggibot.interfaces.controller import (
    CompletionSignal,
    ControllerTimeoutError,
    DeviceController,
    DeviceUnavailableError,
    Frame,
    InjectionFailedError,
)
from janggibot.models.actions import ActionCommand, InputAction, InputKind, Point
from janggibot.models.board import Square
from janggibot.models.geometry import BoardGeometry

logger = logging.getLogger(__name__)


class AdbController(DeviceController):
    """Controls an emulator or phone through adb."""

    def __init__(
        self,
        serial: str,
        adb_path: str = "adb",
        tap_interval_ms: int = 30,
        geometry: BoardGeometry | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            serial: Device serial or host:port.
            adb_path: adb executable.
            tap_interval_ms: Pause between inputs of one command.
            geometry: Initial square-to-screen grid.
        """
        self._serial = serial or "emulator-5554"
        self._adb_path = adb_path
        self._tap_interval_s = tap_interval_ms / 1000
        self._geometry = geometry or BoardGeometry()
        self._sequence = 0

        if shutil.which(adb_path) is None:
            logger.warning(f"adb executable not found: {adb_path}")

    @property
    def geometry(self) -> BoardGeometry:
        return self._geometry

    def calibrate(self, geometry: BoardGeometry) -> None:
        logger.info("ADB controller grid recalibrated")
        self._geometry = geometry

    def _run(self, args: list[str], timeout: float, *, target: bool = True) -> bytes:
        selector = ["-s", self._serial] if target else []
        command = [self._adb_path, *selector, *args]
        try:
            result = subprocess.run(command, capture_output=True, timeout=timeout, check=False)
        except subprocess.TimeoutExpired as e:
            raise ControllerTimeoutError(
                f"adb {' '.join(args)} timed out after {timeout:.1f}s"
            ) from e
        except OSError as e:
            raise DeviceUnavailableError(f"Failed to run adb: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            if "not found" in stderr or "offline" in stderr or "unauthorized" in stderr:
                raise DeviceUnavailableError(f"Device {self._serial} unavailable: {stderr}")
            raise InjectionFailedError(f"adb {' '.join(args)} failed: {stderr}")
        return result.stdout

    def connect(self, timeout: float) -> None:
        start = time.monotonic()
        try:
            if ":" in self._serial:
                # Network devices must be attached before they can be addressed.
                reply = self._run(["connect", self._serial], timeout, target=False)
                text = reply.decode("utf-8", errors="replace").strip()
                if "connected to" not in text:
                    raise DeviceUnavailableError(f"adb connect {self._serial} failed: {text}")
            remaining = max(0.1, timeout - (time.monotonic() - start))
            state = self._run(["get-state"], remaining).decode("utf-8", errors="replace").strip()
        except InjectionFailedError as e:
            raise DeviceUnavailableError(f"Device {self._serial} unavailable: {e}") from e

        if state != "device":
            raise DeviceUnavailableError(f"Device {self._serial} is {state or 'unknown'}")
        logger.info(f"ADB device {self._serial} connected")

    def capture(self, timeout: float) -> Frame:
        timestamp = datetime.now()
        try:
            raw = self._run(["exec-out", "screencap", "-p"], timeout)
        except InjectionFailedError as e:
            raise DeviceUnavailableError(f"Screen capture failed: {e}") from e

        try:
            image = Image.open(io.BytesIO(raw))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise DeviceUnavailableError(f"Screen capture returned undecodable data: {e}") from e

        self._sequence += 1
        return Frame(sequence=self._sequence, captured_at=timestamp, image=image, raw_bytes=raw)

    def inject(self, command: ActionCommand, timeout: float) -> CompletionSignal:
        start = time.monotonic()
        for index, action in enumerate(command.inputs):
            remaining = timeout - (time.monotonic() - start)
            if remaining <= 0:
                raise ControllerTimeoutError(
                    f"Injection of {command.description!r} timed out at input {index}"
                )
            self._run(["shell", "input", *self._input_args(action)], remaining)
            if index < len(command.inputs) - 1 and self._tap_interval_s > 0:
                time.sleep(self._tap_interval_s)

        duration_ms = (time.monotonic() - start) * 1000
        logger.debug(f"Injected {command.description!r} in {duration_ms:.0f}ms")
        return CompletionSignal(command, duration_ms)

    def _point(self, square: Square | None, point: Point | None) -> Point:
        if point is not None:
            return point
        if square is None:
            raise InjectionFailedError("Input has no target")
        return self._geometry.square_to_point(square)

    def _input_args(self, action: InputAction) -> list[str]:
        start = self._point(action.square, action.point)
        if action.kind == InputKind.TAP:
            return ["tap", str(start.x), str(start.y)]
        end = self._point(action.end_square, action.end_point)
        return [
            "swipe",
            str(start.x),
            str(start.y),
            str(end.x),
            str(end.y),
            str(action.duration_ms),
        ]
