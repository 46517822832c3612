from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, Any, Optional, Sequence

from assistant_sidecar.agent.structs import ProviderSignal, ToolSpec


class BaseProvider(ABC):
    """
    The Abstract Base Class (Contract) for all model providers.

    A provider is the black-box model/tool invocation capability: given a
    prompt and the tools the model may call, it yields lifecycle signals.
    """

    name: str = "base"

    @abstractmethod
    def stream_events(
        self,
        prompt: str,
        model_name: str,
        tools: Optional[Sequence[ToolSpec]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[ProviderSignal]:
        """
        Stream structured signals for one turn.

        Yields:
            ProviderSignal: model_start, tool_start, tool_end and token signals.

        Closing the iterator (``aclose``) must stop the underlying request.
        """
        pass

    @abstractmethod
    async def complete(self, prompt: str, model_name: str) -> str:
        """
        Single non-streaming completion, used by the auxiliary summarizer.
        """
        pass
