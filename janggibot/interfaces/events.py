"""Event sink interface for replay and telemetry consumers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from janggibot.models.events import SessionEvent


class EventSink(ABC):
    """Consumer of session events.

    Delivery is at-most-once and best-effort. Sinks run off the turn loop,
    so a slow sink only delays other sinks, never the session.
    """

    @abstractmethod
    def publish(self, event: SessionEvent) -> None:
        """Receive one event."""
        ...

    def close(self) -> None:  # noqa: B027
        """Release resources. Optional."""
