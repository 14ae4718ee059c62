"""Tests for frame comparison, capture and the simulated recognizer."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from PIL import Image

from janggibot.interfaces.controller import ControllerTimeoutError, Frame
from janggibot.interfaces.vision import AlignmentLostError, CaptureUnusableError
from janggibot.models.board import BoardState
from janggibot.models.geometry import BoardGeometry
from janggibot.vision import FrameCapture, SimulatedRecognizer, frame_difference
from janggibot.vision.frames import template_similarity


def _frame(sequence: int, **metadata: object) -> Frame:
    return Frame(sequence=sequence, captured_at=datetime.now(), metadata=dict(metadata))


class TestFrameComparison:
    """Tests for frame_difference and template_similarity."""

    def test_identical_frames(self) -> None:
        image = Image.new("RGB", (32, 32), (120, 40, 40))
        assert frame_difference(image, image.copy()) == 0.0

    def test_opposite_frames(self) -> None:
        black = Image.new("L", (32, 32), 0)
        white = Image.new("L", (32, 32), 255)
        assert frame_difference(black, white) == pytest.approx(1.0)

    def test_different_sizes(self) -> None:
        small = Image.new("L", (16, 16), 100)
        large = Image.new("L", (64, 64), 100)
        assert frame_difference(small, large) == pytest.approx(0.0)

    def test_template_similarity(self) -> None:
        image = Image.new("RGB", (100, 100), (0, 0, 0))
        image.paste((255, 255, 255), (10, 10, 30, 30))
        template = Image.new("RGB", (20, 20), (255, 255, 255))

        assert template_similarity(image, template, (10, 10, 20, 20)) == pytest.approx(1.0)
        assert template_similarity(image, template, (60, 60, 20, 20)) == pytest.approx(0.0)

    def test_region_outside_image(self) -> None:
        image = Image.new("RGB", (10, 10))
        assert template_similarity(image, image, (50, 50, 5, 5)) == 0.0


class TestFrameCapture:
    """Tests for FrameCapture."""

    def test_buffer_newest_first(self) -> None:
        controller = MagicMock()
        controller.capture.side_effect = [_frame(i) for i in range(1, 5)]
        capture = FrameCapture(controller, timeout_s=1.5, buffer_size=3)

        for _ in range(4):
            capture.capture()

        assert [f.sequence for f in capture.get_buffer()] == [4, 3, 2]
        assert [f.sequence for f in capture.get_buffer(count=2)] == [4, 3]
        assert capture.latest is not None and capture.latest.sequence == 4
        controller.capture.assert_called_with(1.5)

    def test_controller_error_passes_through(self) -> None:
        controller = MagicMock()
        controller.capture.side_effect = ControllerTimeoutError("slow")
        capture = FrameCapture(controller, timeout_s=1.0)

        with pytest.raises(ControllerTimeoutError):
            capture.capture()
        assert capture.latest is None

    def test_unexpected_error_wrapped(self) -> None:
        controller = MagicMock()
        controller.capture.side_effect = RuntimeError("usb reset")
        capture = FrameCapture(controller, timeout_s=1.0)

        with pytest.raises(Exception, match="Unexpected error during capture: usb reset"):
            capture.capture()

    def test_clear_buffer(self) -> None:
        controller = MagicMock()
        controller.capture.return_value = _frame(1)
        capture = FrameCapture(controller, timeout_s=1.0)
        capture.capture()

        capture.clear_buffer()

        assert capture.get_buffer() == []


class TestSimulatedRecognizer:
    """Tests for SimulatedRecognizer."""

    def test_recognize(self) -> None:
        board = BoardState.initial()
        anchors = BoardGeometry().anchors
        observation = SimulatedRecognizer().recognize(_frame(7, board=board, anchors=anchors))

        assert observation.board == board
        assert observation.sequence == 7
        assert observation.confidence == 1.0
        assert observation.anchors == anchors

    def test_frame_confidence_wins(self) -> None:
        frame = _frame(1, board=BoardState.initial(), confidence=0.4)
        assert SimulatedRecognizer(0.99).recognize(frame).confidence == 0.4

    def test_missing_board(self) -> None:
        with pytest.raises(CaptureUnusableError):
            SimulatedRecognizer().recognize(_frame(1))

    def test_align(self) -> None:
        geometry = BoardGeometry().shifted(5, 5)
        assert SimulatedRecognizer().align(_frame(1, geometry=geometry)) == geometry
        with pytest.raises(AlignmentLostError):
            SimulatedRecognizer().align(_frame(1))
