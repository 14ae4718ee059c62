"""Device controller backends."""

from janggibot.controller.adb import AdbController
from janggibot.controller.simulated import SimulatedDevice

__all__ = ["AdbController", "SimulatedDevice"]
