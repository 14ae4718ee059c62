"""Board recognizer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from janggibot.interfaces.controller import Frame
    from janggibot.models.geometry import BoardGeometry
    from janggibot.models.observations import BoardObservation


class BoardRecognizer(ABC):
    """Abstract interface for turning frames into board observations.

    The recognizer is responsible for:
    - Locating the board and its anchors in a frame
    - Classifying the piece on every square
    - Reporting how confident it is in the result
    """

    @abstractmethod
    def recognize(self, frame: Frame) -> BoardObservation:
        """Recognize the board in a frame.

        Raises:
            CaptureUnusableError: If the frame cannot be processed.
            AlignmentLostError: If the board cannot be located.
        """
        ...

    @abstractmethod
    def align(self, frame: Frame) -> BoardGeometry:
        """Rebuild the square-to-screen grid from a frame.

        Raises:
            AlignmentLostError: If the board cannot be located.
        """
        ...


class VisionError(Exception):
    """Error raised when recognition fails."""

    pass


class CaptureUnusableError(VisionError):
    """The frame could not be used for recognition."""

    pass


class AlignmentLostError(VisionError):
    """The board grid could not be located."""

    pass
