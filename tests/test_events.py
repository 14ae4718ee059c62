"""Tests for the event log, publisher and sinks."""

from __future__ import annotations

import logging
import threading

import pytest

from janggibot.events import EventLog, EventPublisher, LoggingEventSink, ReplayBuffer
from janggibot.interfaces.events import EventSink
from janggibot.models.anomaly import AnomalyKind
from janggibot.models.events import EventCause, SessionEvent, TerminalOutcome, TurnState


def _event(sequence: int, to_state: TurnState = TurnState.READY) -> SessionEvent:
    return SessionEvent(
        sequence=sequence, session_id="abc", to_state=to_state, cause=EventCause.MATCH
    )


class RecordingSink(EventSink):
    """Collects published events."""

    def __init__(self) -> None:
        self.events: list[SessionEvent] = []
        self.closed = False

    def publish(self, event: SessionEvent) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.closed = True


class FailingSink(EventSink):
    """Raises on every event."""

    def publish(self, event: SessionEvent) -> None:
        raise RuntimeError("disk full")


class BlockingSink(EventSink):
    """Blocks delivery until released."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def publish(self, event: SessionEvent) -> None:
        self.release.wait(timeout=5)


class TestEventLog:
    """Tests for EventLog."""

    def test_sequences_and_callback(self) -> None:
        seen: list[SessionEvent] = []
        log = EventLog("abc", on_emit=seen.append)

        first = log.emit(
            from_state=None,
            to_state=TurnState.READY,
            cause=EventCause.SESSION_STARTED,
            turn=0,
            retries=0,
        )
        second = log.emit(
            from_state=TurnState.READY,
            to_state=TurnState.TERMINAL,
            cause=EventCause.RETRIES_EXHAUSTED,
            turn=1,
            retries=1,
            outcome=TerminalOutcome.ABORTED,
            anomaly=AnomalyKind.UNKNOWN,
        )

        assert (first.sequence, second.sequence) == (1, 2)
        assert seen == [first, second]
        assert log.states() == [TurnState.READY, TurnState.TERMINAL]
        assert len(log) == 2
        assert second.session_id == "abc"

    def test_tail(self) -> None:
        log = EventLog("abc")
        for _ in range(5):
            log.emit(
                from_state=None,
                to_state=TurnState.READY,
                cause=EventCause.MATCH,
                turn=0,
                retries=0,
            )

        assert [e.sequence for e in log.tail(2)] == [4, 5]
        assert log.tail(0) == []


class TestEventPublisher:
    """Tests for EventPublisher."""

    def test_delivers_to_all_sinks(self) -> None:
        first, second = RecordingSink(), RecordingSink()
        publisher = EventPublisher([first, FailingSink(), second])
        publisher.start()

        for sequence in (1, 2, 3):
            publisher.submit(_event(sequence))
        publisher.stop()

        assert [e.sequence for e in first.events] == [1, 2, 3]
        assert [e.sequence for e in second.events] == [1, 2, 3]
        assert publisher.delivered == 3
        assert first.closed

    def test_full_queue_drops(self) -> None:
        publisher = EventPublisher(queue_size=2)

        for sequence in range(1, 6):
            publisher.submit(_event(sequence))

        assert publisher.dropped == 3

    def test_slow_sink_does_not_block_submit(self) -> None:
        sink = BlockingSink()
        publisher = EventPublisher([sink], queue_size=1)
        publisher.start()
        try:
            for sequence in range(1, 20):
                publisher.submit(_event(sequence))
            assert publisher.dropped > 0
        finally:
            sink.release.set()
            publisher.stop()

    def test_stop_without_start(self) -> None:
        EventPublisher().stop()


class TestSinks:
    """Tests for the built-in sinks."""

    def test_replay_buffer(self) -> None:
        buffer = ReplayBuffer(max_events=3)
        for sequence in range(1, 6):
            buffer.publish(_event(sequence))

        assert len(buffer) == 3
        assert [e.sequence for e in buffer.get_events_since(3)] == [4, 5]
        snapshot = buffer.snapshot()
        assert snapshot[0]["sequence"] == 3
        assert snapshot[0]["to_state"] == "ready"

    def test_logging_sink(self, caplog: pytest.LogCaptureFixture) -> None:
        event = SessionEvent(
            sequence=9,
            session_id="abc",
            from_state=TurnState.RECOVERY,
            to_state=TurnState.TERMINAL,
            outcome=TerminalOutcome.ABORTED,
            cause=EventCause.RETRIES_EXHAUSTED,
            anomaly=AnomalyKind.OVERLAY,
            turn=2,
            retries=1,
        )

        with caplog.at_level(logging.INFO, logger="janggibot.events.sinks"):
            LoggingEventSink().publish(event)

        assert "[EVENT #9] recovery -> terminal(aborted)" in caplog.text
        assert "anomaly=overlay" in caplog.text
