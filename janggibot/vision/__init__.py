"""Frame capture, pixel comparisons and recognizers."""

from janggibot.vision.capture import FrameCapture
from janggibot.vision.frames import frame_difference, template_similarity
from janggibot.vision.simulated import SimulatedRecognizer

__all__ = ["FrameCapture", "SimulatedRecognizer", "frame_difference", "template_similarity"]
