from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from assistant_sidecar.protocol.events import SignalType

USER = "user"
ASSISTANT = "assistant"
ROLES = (USER, ASSISTANT)


# --- 0. Provider Signals (The Stream Contract) ---


@dataclass
class ProviderSignal:
    """
    A unified signal from the model/tool invocation capability.

    type: model_start | tool_start | tool_end | token
    data: token text for ``token``; input/output payload for tool signals.
    name: tool name for tool signals.
    """

    type: SignalType
    data: Any = None
    name: Optional[str] = None


# --- 1. Conversation Memory ---


@dataclass(frozen=True)
class Turn:
    """One message exchanged in a conversation. Immutable once created."""

    role: str
    content: str
    timestamp: float

    @property
    def label(self) -> str:
        return self.role.capitalize()

    def render(self) -> str:
        return f"{self.label}: {self.content}"


@dataclass
class ConversationState:
    """
    The unit of memory for one logical chat.

    ``summary`` plus ``turns`` together always represent the full history.
    """

    conversation_id: str
    turns: List[Turn] = field(default_factory=list)
    summary: str = ""
    summarizing: bool = False
    last_summary_at: Optional[float] = None
    updated_at: float = 0.0


# --- 2. Capabilities ---


@dataclass
class ToolSpec:
    """Describes a capability's interface as offered to the model."""

    name: str
    description: str
    parameters: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_openai(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
