"""Device controller interface for frame capture and input injection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from PIL import Image

    from janggibot.models.actions import ActionCommand
    from janggibot.models.geometry import BoardGeometry


class Frame:
    """A captured frame with metadata."""

    __slots__ = ("sequence", "captured_at", "image", "raw_bytes", "metadata")

    def __init__(
        self,
        sequence: int,
        captured_at: datetime,
        image: Image.Image | None = None,
        raw_bytes: bytes = b"",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize a frame.

        Args:
            sequence: Monotonically increasing capture number.
            captured_at: When the frame was captured.
            image: Decoded PIL image, if pixels are available.
            raw_bytes: Encoded image bytes as returned by the device.
            metadata: Backend-specific extras.
        """
        self.sequence = sequence
        self.captured_at = captured_at
        self.image = image
        self.raw_bytes = raw_bytes
        self.metadata = metadata or {}

    @property
    def size(self) -> tuple[int, int] | None:
        """Image size as (width, height), if an image is attached."""
        return self.image.size if self.image is not None else None

    def __repr__(self) -> str:
        return f"Frame(seq={self.sequence}, size={self.size})"


class CompletionSignal:
    """Confirmation that an injected command finished."""

    __slots__ = ("command", "duration_ms", "completed_at")

    def __init__(
        self,
        command: ActionCommand,
        duration_ms: float,
        completed_at: datetime | None = None,
    ) -> None:
        self.command = command
        self.duration_ms = duration_ms
        self.completed_at = completed_at or datetime.now()


class DeviceController(ABC):
    """Abstract interface for the device running the game client.

    Both blocking operations accept a timeout in seconds supplied by the
    orchestrator. Exceeding it raises ControllerTimeoutError.
    """

    @abstractmethod
    def connect(self, timeout: float) -> None:
        """Attach to the device before the match starts.

        Raises:
            DeviceUnavailableError: If the device cannot be reached.
            ControllerTimeoutError: If connecting exceeds ``timeout``.
        """
        ...

    @abstractmethod
    def capture(self, timeout: float) -> Frame:
        """Capture the current screen.

        Raises:
            DeviceUnavailableError: If the device cannot be reached.
            ControllerTimeoutError: If capture exceeds ``timeout``.
        """
        ...

    @abstractmethod
    def inject(self, command: ActionCommand, timeout: float) -> CompletionSignal:
        """Inject the command's input sequence in order.

        Raises:
            InjectionFailedError: If any input is rejected.
            ControllerTimeoutError: If injection exceeds ``timeout``.
        """
        ...

    @abstractmethod
    def calibrate(self, geometry: BoardGeometry) -> None:
        """Replace the grid used to resolve square targets."""
        ...

    @property
    @abstractmethod
    def geometry(self) -> BoardGeometry:
        """Currently calibrated grid."""
        ...


class ControllerError(Exception):
    """Error raised when controller operations fail."""

    pass


class DeviceUnavailableError(ControllerError):
    """The device could not be reached."""

    pass


class InjectionFailedError(ControllerError):
    """The device rejected an input."""

    pass


class ControllerTimeoutError(ControllerError):
    """A capture or injection exceeded its timeout."""

    pass
