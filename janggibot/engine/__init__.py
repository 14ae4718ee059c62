"""Engine invocation and built-in engines."""

from janggibot.engine.runner import EngineRunner
from janggibot.engine.scripted import ScriptedEngine

__all__ = ["EngineRunner", "ScriptedEngine"]
