from .events import SignalType, StreamEventType
from .objects import ChatRequest, ChatResult, EventSink, StreamEvent, utc_timestamp

__all__ = [
    "SignalType",
    "StreamEventType",
    "ChatRequest",
    "ChatResult",
    "EventSink",
    "StreamEvent",
    "utc_timestamp",
]
