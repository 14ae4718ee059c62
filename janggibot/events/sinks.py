"""Built-in event sinks."""

from __future__ import annotations

import logging
import threading
from collections import deque

from janggibot.interfaces.events import EventSink
from janggibot.models.events import SessionEvent

logger = logging.getLogger(__name__)


class ReplayBuffer(EventSink):
    """Thread-safe bounded buffer of recent events for replay consumers."""

    def __init__(self, max_events: int = 500) -> None:
        self._lock = threading.Lock()
        self._events: deque[SessionEvent] = deque(maxlen=max(1, max_events))

    def publish(self, event: SessionEvent) -> None:
        with self._lock:
            self._events.append(event)

    def get_events_since(self, last_sequence: int) -> list[SessionEvent]:
        """Events with a sequence greater than ``last_sequence``."""
        with self._lock:
            return [event for event in self._events if event.sequence > last_sequence]

    def snapshot(self) -> list[dict[str, object]]:
        """JSON-ready copies of the buffered events."""
        with self._lock:
            return [event.model_dump(mode="json") for event in self._events]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class LoggingEventSink(EventSink):
    """Writes one log line per transition."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def publish(self, event: SessionEvent) -> None:
        source = event.from_state.value if event.from_state else "-"
        target = event.to_state.value
        if event.outcome is not None:
            target = f"{target}({event.outcome.value})"
        anomaly = f" anomaly={event.anomaly.value}" if event.anomaly else ""
        logger.log(
            self._level,
            "[EVENT #%d] %s -> %s cause=%s turn=%d retries=%d%s",
            event.sequence,
            source,
            target,
            event.cause.value,
            event.turn,
            event.retries,
            anomaly,
        )
