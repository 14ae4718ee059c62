"""Interface definitions for janggibot collaborators.

The orchestrator only depends on these interfaces, so production backends
and test doubles are interchangeable.
"""

from janggibot.interfaces.controller import DeviceController
from janggibot.interfaces.engine import GameEngine
from janggibot.interfaces.events import EventSink
from janggibot.interfaces.vision import BoardRecognizer

__all__ = [
    "BoardRecognizer",
    "DeviceController",
    "EventSink",
    "GameEngine",
]
