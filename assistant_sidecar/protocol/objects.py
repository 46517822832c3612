from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .events import StreamEventType


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StreamEvent:
    """
    One independently parseable event in the response stream.

    Only fields relevant to the event kind are set; ``to_dict`` drops the rest.
    """

    type: StreamEventType
    content: Optional[str] = None
    tool: Optional[str] = None
    input: Any = None
    output: Any = None
    provider: Optional[str] = None
    auth_url: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[str] = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type.value}
        if self.content is not None:
            payload["content"] = self.content
        if self.tool is not None:
            payload["tool"] = self.tool
            # Tool events always carry their payload slot, even when empty
            if self.type == StreamEventType.TOOL_START:
                payload["input"] = self.input
            elif self.type == StreamEventType.TOOL_END:
                payload["output"] = self.output
        if self.provider is not None:
            payload["provider"] = self.provider
        if self.auth_url is not None:
            payload["authUrl"] = self.auth_url
        if self.error is not None:
            payload["error"] = self.error
        if self.timestamp is not None:
            payload["timestamp"] = self.timestamp
        return payload


# Type definition for stream consumers
EventSink = Callable[[StreamEvent], Awaitable[None]]


class ChatRequest(BaseModel):
    """
    Logical fields of one chat turn request, accepted with the UI's
    camelCase names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: Optional[str] = None
    conversation_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("conversationId", "conversation_id")
    )
    credential: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("apiKey", "credential")
    )
    model: Optional[str] = None
    provider_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("providerId", "provider_id")
    )
    system_prompt: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("systemPrompt", "system_prompt")
    )
    file_summaries: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("fileSummaries", "fileContext", "file_summaries"),
    )

    # Filled by the transport from request headers, never from the body
    header_conversation_id: Optional[str] = Field(default=None, exclude=True)
    header_credential: Optional[str] = Field(default=None, exclude=True)


@dataclass
class ChatResult:
    """
    Payload of the buffered (non-streaming) chat response.
    """

    success: bool
    response: str
    conversation_id: str
    timestamp: str = field(default_factory=utc_timestamp)
    events: List[StreamEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "response": self.response,
            "conversationId": self.conversation_id,
            "timestamp": self.timestamp,
        }
