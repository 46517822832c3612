from enum import Enum


class StreamEventType(str, Enum):
    """
    Canonical event kinds written to the UI stream.
    Using an Enum prevents typo bugs (e.g., 'tool_end' vs 'tool_ended').
    """

    # 1. Stream framing
    START = "start"
    END = "end"

    # 2. Response lifecycle
    RESPONSE_START = "response_start"
    TOKEN = "token"
    COMPLETE = "complete"

    # 3. Capability lifecycle
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"

    # 4. Failures
    OAUTH_REQUIRED = "oauth_required"
    ERROR = "error"


class SignalType(str, Enum):
    """
    Kinds of signals produced by a provider while it runs one model call.
    """

    MODEL_START = "model_start"
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    TOKEN = "token"
