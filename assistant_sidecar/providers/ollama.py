import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx
from ollama import AsyncClient, ResponseError

from assistant_sidecar.agent.structs import ProviderSignal, ToolSpec
from assistant_sidecar.exceptions import ToolNotFoundError
from assistant_sidecar.exceptions.provider import (
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
)
from assistant_sidecar.protocol.events import SignalType
from assistant_sidecar.providers.base import BaseProvider
from assistant_sidecar.tools.registry import ToolRegistry
from assistant_sidecar.utils.logger import stringify_preview
from assistant_sidecar.utils.retry import retry_on_transient_errors

logger = logging.getLogger("OllamaProvider")


class OllamaProvider(BaseProvider):
    """
    Adapter for Ollama (Local & Cloud).
    Maps native SDK objects -> ProviderSignal.
    """

    name = "ollama"

    def __init__(
        self,
        host: str,
        api_key: Optional[str] = None,
        registry: Optional[ToolRegistry] = None,
        temperature: float = 0.5,
        max_steps: int = 20,
    ):
        self.host = host
        self.registry = registry
        self.temperature = temperature
        self.max_steps = max_steps

        headers = {}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        # One client per provider instance, reused for every call of the turn
        self.client = AsyncClient(host=self.host, headers=headers)

    async def stream_events(
        self,
        prompt: str,
        model_name: str,
        tools: Optional[Sequence[ToolSpec]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[ProviderSignal]:
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        tool_payload = [spec.to_openai() for spec in tools or []] or None
        request_options = {"temperature": self.temperature, **(options or {})}

        for step in range(self.max_steps):
            yield ProviderSignal(
                type=SignalType.MODEL_START,
                data={"step": step, "input": stringify_preview(messages[-1])},
            )

            text_parts: List[str] = []
            tool_calls: List[Any] = []
            stream = None
            try:
                stream = await self.client.chat(
                    model=model_name,
                    messages=messages,
                    tools=tool_payload,
                    options=request_options,
                    stream=True,
                )
                async for chunk in stream:
                    if chunk.message.content:
                        text_parts.append(chunk.message.content)
                        yield ProviderSignal(
                            type=SignalType.TOKEN, data=chunk.message.content
                        )
                    if chunk.message.tool_calls:
                        tool_calls.extend(chunk.message.tool_calls)
            except (ResponseError, httpx.HTTPError) as e:
                raise self._map_error(e) from e
            finally:
                # Leaving early must drop the HTTP stream
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            if not tool_calls:
                return

            messages.append(
                {
                    "role": "assistant",
                    "content": "".join(text_parts),
                    "tool_calls": [
                        {
                            "function": {
                                "name": tc.function.name,
                                "arguments": dict(tc.function.arguments or {}),
                            }
                        }
                        for tc in tool_calls
                    ],
                }
            )
            for tc in tool_calls:
                name = tc.function.name
                arguments = dict(tc.function.arguments or {})
                yield ProviderSignal(type=SignalType.TOOL_START, name=name, data=arguments)
                output = await self._run_tool(name, arguments)
                yield ProviderSignal(type=SignalType.TOOL_END, name=name, data=output)
                messages.append(
                    {
                        "role": "tool",
                        "tool_name": name,
                        "content": output if isinstance(output, str) else json.dumps(output, default=str),
                    }
                )

        logger.warning("Tool loop limit reached after %d model calls", self.max_steps)

    @retry_on_transient_errors()
    async def complete(self, prompt: str, model_name: str) -> str:
        try:
            response = await self.client.chat(
                model=model_name,
                messages=[{"role": "user", "content": prompt}],
                options={"temperature": self.temperature},
                stream=False,
            )
        except (ResponseError, httpx.HTTPError) as e:
            raise self._map_error(e) from e
        return response.message.content or ""

    async def _run_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        if self.registry is None:
            return f"Tool not available: {name}"
        try:
            return await self.registry.execute(name, arguments)
        except ToolNotFoundError as exc:
            logger.warning("Model requested unavailable tool %s", name)
            return exc.message

    def _map_error(self, exc: Exception) -> ProviderError:
        kwargs = {"provider_name": self.name, "original_error": exc}
        if isinstance(exc, httpx.HTTPError):
            return ProviderConnectionError(f"Ollama request failed: {exc}", **kwargs)

        status_code = getattr(exc, "status_code", None)
        message = f"Ollama API error ({status_code}): {getattr(exc, 'error', exc)}"
        if status_code in (401, 403):
            return ProviderAuthenticationError(message, **kwargs)
        if status_code == 429:
            return ProviderRateLimitError(message, **kwargs)
        return ProviderResponseError(message, status_code=status_code, **kwargs)
