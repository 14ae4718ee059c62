"""Session event recording and publishing."""

from janggibot.events.log import EventLog
from janggibot.events.publisher import EventPublisher
from janggibot.events.sinks import LoggingEventSink, ReplayBuffer

__all__ = ["EventLog", "EventPublisher", "LoggingEventSink", "ReplayBuffer"]
