"""Fire-and-forget fan-out of session events to sinks.

The turn loop only ever calls ``submit``, which never blocks: events go to
a bounded queue drained by a daemon thread. When the queue is full the event
is dropped and counted. Sink failures are logged and do not reach the loop.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from janggibot.interfaces.events import EventSink
    from janggibot.models.events import SessionEvent

logger = logging.getLogger(__name__)

_STOP = object()


class EventPublisher:
    """Delivers events to sinks on a background thread."""

    def __init__(self, sinks: Sequence[EventSink] = (), queue_size: int = 1000) -> None:
        self._sinks = list(sinks)
        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._dropped = 0
        self._delivered = 0
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def dropped(self) -> int:
        """Events dropped because the queue was full."""
        with self._lock:
            return self._dropped

    @property
    def delivered(self) -> int:
        """Events handed to all sinks."""
        with self._lock:
            return self._delivered

    def add_sink(self, sink: EventSink) -> None:
        """Register another sink. Call before start()."""
        self._sinks.append(sink)

    def start(self) -> None:
        """Start the delivery thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="EventPublisher", daemon=True)
        self._thread.start()

    def submit(self, event: SessionEvent) -> None:
        """Queue an event without blocking."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            logger.debug(f"Event queue full, dropped event #{event.sequence}")

    def stop(self, timeout: float = 2.0) -> None:
        """Deliver queued events (best effort) and stop the thread."""
        if self._thread is None:
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Event queue still full at shutdown")
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Event publisher did not stop within timeout")
        self._thread = None
        for sink in self._sinks:
            try:
                sink.close()
            except Exception as e:
                logger.warning(f"Event sink close error: {e}")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            for sink in self._sinks:
                try:
                    sink.publish(item)  # type: ignore[arg-type]
                except Exception as e:
                    logger.warning(f"Event sink {type(sink).__name__} error: {e}")
            with self._lock:
                self._delivered += 1
