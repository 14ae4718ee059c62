"""Recognizer for frames produced by the simulated device."""

from __future__ import annotations

from typing import TYPE_CHECKING

from janggibot.interfaces.vision import AlignmentLostError, BoardRecognizer, CaptureUnusableError
from janggibot.models.geometry import BoardGeometry
from janggibot.models.observations import BoardObservation

if TYPE_CHECKING:
    from janggibot.interfaces.controller import Frame


class SimulatedRecognizer(BoardRecognizer):
    """Reads the true board from simulated frame metadata."""

    def __init__(self, confidence: float = 1.0) -> None:
        self._confidence = confidence

    def recognize(self, frame: Frame) -> BoardObservation:
        board = frame.metadata.get("board")
        if board is None:
            raise CaptureUnusableError(f"{frame!r} carries no board")
        return BoardObservation(
            board=board,
            sequence=frame.sequence,
            captured_at=frame.captured_at,
            confidence=frame.metadata.get("confidence", self._confidence),
            anchors=tuple(frame.metadata.get("anchors", ())),
            game_result=frame.metadata.get("game_result"),
        )

    def align(self, frame: Frame) -> BoardGeometry:
        geometry = frame.metadata.get("geometry")
        if geometry is None:
            raise AlignmentLostError(f"{frame!r} carries no geometry")
        return geometry
