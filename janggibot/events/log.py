"""Append-only, ordered event log of one session."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from janggibot.models.anomaly import AnomalyKind
from janggibot.models.events import EventCause, SessionEvent, TerminalOutcome, TurnState


class EventLog:
    """Assigns sequence numbers and keeps every emitted event.

    Events are frozen models and the log never removes or replaces an
    entry, so the sequence is a total order usable for replay.
    """

    def __init__(
        self,
        session_id: str,
        on_emit: Callable[[SessionEvent], None] | None = None,
    ) -> None:
        self._session_id = session_id
        self._events: list[SessionEvent] = []
        self._lock = threading.Lock()
        self._on_emit = on_emit

    def emit(
        self,
        *,
        from_state: TurnState | None,
        to_state: TurnState,
        cause: EventCause,
        turn: int,
        retries: int,
        outcome: TerminalOutcome | None = None,
        anomaly: AnomalyKind | None = None,
        detail: dict[str, Any] | None = None,
    ) -> SessionEvent:
        """Record one transition and hand it to the publisher."""
        with self._lock:
            event = SessionEvent(
                sequence=len(self._events) + 1,
                session_id=self._session_id,
                from_state=from_state,
                to_state=to_state,
                outcome=outcome,
                cause=cause,
                anomaly=anomaly,
                turn=turn,
                retries=retries,
                detail=detail or {},
            )
            self._events.append(event)
        if self._on_emit is not None:
            self._on_emit(event)
        return event

    @property
    def events(self) -> tuple[SessionEvent, ...]:
        """All events in order."""
        with self._lock:
            return tuple(self._events)

    def tail(self, count: int) -> list[SessionEvent]:
        """The last ``count`` events, oldest first."""
        with self._lock:
            return self._events[-count:] if count > 0 else []

    def states(self) -> list[TurnState]:
        """States entered, in order."""
        return [event.to_state for event in self.events]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
