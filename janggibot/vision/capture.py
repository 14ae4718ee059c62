"""Frame capture with a rolling buffer.

Wraps a DeviceController so every capture lands in a bounded buffer. The
buffer feeds animation detection (successive frames) and the diagnostic
trail attached to aborted sessions.

Example:
    >>> capture = FrameCapture(controller, timeout_s=2.0, buffer_size=10)
    >>> frame = capture.capture()
    >>> recent = capture.get_buffer(count=2)  # newest first
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from janggibot.interfaces.controller import ControllerError

if TYPE_CHECKING:
    from janggibot.interfaces.controller import DeviceController, Frame

logger = logging.getLogger(__name__)


class FrameCapture:
    """Captures frames through a controller and keeps the last N."""

    def __init__(
        self,
        controller: DeviceController,
        timeout_s: float,
        buffer_size: int = 10,
    ) -> None:
        """Initialize the capture wrapper.

        Args:
            controller: Device to capture from.
            timeout_s: Timeout passed to every capture call.
            buffer_size: Maximum number of frames kept.
        """
        self._controller = controller
        self._timeout_s = timeout_s
        self._buffer: deque[Frame] = deque(maxlen=buffer_size)

    def capture(self) -> Frame:
        """Capture a frame and add it to the buffer.

        Raises:
            ControllerError: If the device fails or times out.
        """
        try:
            frame = self._controller.capture(self._timeout_s)
        except ControllerError:
            raise
        except Exception as e:
            raise ControllerError(f"Unexpected error during capture: {e}") from e

        self._buffer.append(frame)
        logger.debug(f"Captured {frame!r}")
        return frame

    @property
    def latest(self) -> Frame | None:
        """Most recent frame, if any."""
        return self._buffer[-1] if self._buffer else None

    def get_buffer(self, count: int | None = None) -> list[Frame]:
        """Get recent frames, most recent first."""
        frames = list(reversed(self._buffer))
        return frames if count is None else frames[:count]

    def clear_buffer(self) -> None:
        """Drop all buffered frames."""
        self._buffer.clear()
