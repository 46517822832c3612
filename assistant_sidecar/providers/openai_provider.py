import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

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

logger = logging.getLogger("OpenAIProvider")


class OpenAIProvider(BaseProvider):
    """
    Adapter for OpenAI-compatible chat-completions streaming.

    Runs the tool-calling loop itself: when the model asks for tools they are
    executed through the registry and their results fed back, up to
    ``max_steps`` model calls per turn.
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        registry: Optional[ToolRegistry] = None,
        temperature: float = 0.5,
        max_steps: int = 20,
        timeout: float = 120.0,
    ):
        if not api_key:
            raise ProviderAuthenticationError(
                "OPENAI_API_KEY is missing. Provide it in request body or environment.",
                provider_name=self.name,
            )
        self.base_url = base_url
        self.registry = registry
        self.temperature = temperature
        self.max_steps = max_steps
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def stream_events(
        self,
        prompt: str,
        model_name: str,
        tools: Optional[Sequence[ToolSpec]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[ProviderSignal]:
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        tool_payload = [spec.to_openai() for spec in tools or []]

        for step in range(self.max_steps):
            yield ProviderSignal(
                type=SignalType.MODEL_START,
                data={"step": step, "input": stringify_preview(messages[-1])},
            )

            request_payload: Dict[str, Any] = {
                "model": model_name,
                "messages": messages,
                "stream": True,
                "temperature": self.temperature,
            }
            if tool_payload:
                request_payload["tools"] = tool_payload
            request_payload.update(options or {})

            pending_tool_calls: Dict[int, Dict[str, Any]] = {}
            text_parts: List[str] = []

            try:
                stream = await self.client.chat.completions.create(**request_payload)
            except openai.OpenAIError as exc:
                raise self._map_error(exc) from exc

            try:
                async for chunk in stream:
                    chunk_data = self._to_dict(chunk)
                    for choice in chunk_data.get("choices") or []:
                        if not isinstance(choice, dict):
                            continue
                        delta = choice.get("delta") or {}
                        content = delta.get("content")
                        if isinstance(content, list):
                            content = self._extract_content_parts(content)
                        if isinstance(content, str) and content:
                            text_parts.append(content)
                            yield ProviderSignal(type=SignalType.TOKEN, data=content)
                        self._merge_tool_call_chunks(
                            pending_tool_calls, delta.get("tool_calls") or []
                        )
            except openai.OpenAIError as exc:
                raise self._map_error(exc) from exc
            finally:
                await stream.close()

            ready = self._flush_ready_tool_calls(pending_tool_calls)
            if not ready:
                return

            messages.append(
                {
                    "role": "assistant",
                    "content": "".join(text_parts),
                    "tool_calls": [
                        {
                            "id": call["id"],
                            "type": "function",
                            "function": {
                                "name": call["name"],
                                "arguments": json.dumps(call["arguments"]),
                            },
                        }
                        for call in ready
                    ],
                }
            )
            for call in ready:
                yield ProviderSignal(
                    type=SignalType.TOOL_START, name=call["name"], data=call["arguments"]
                )
                output = await self._run_tool(call["name"], call["arguments"])
                yield ProviderSignal(type=SignalType.TOOL_END, name=call["name"], data=output)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call["id"],
                        "content": output if isinstance(output, str) else json.dumps(output, default=str),
                    }
                )

        logger.warning("Tool loop limit reached after %d model calls", self.max_steps)

    @retry_on_transient_errors()
    async def complete(self, prompt: str, model_name: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except openai.OpenAIError as exc:
            raise self._map_error(exc) from exc

        data = self._to_dict(response)
        choices = data.get("choices") or []
        if not choices:
            return ""
        content = (choices[0].get("message") or {}).get("content")
        if isinstance(content, list):
            content = self._extract_content_parts(content)
        return content if isinstance(content, str) else ""

    async def _run_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        if self.registry is None:
            return f"Tool not available: {name}"
        try:
            return await self.registry.execute(name, arguments)
        except ToolNotFoundError as exc:
            # Let the model recover from asking for a tool it was not offered
            logger.warning("Model requested unavailable tool %s", name)
            return exc.message

    @staticmethod
    def _to_dict(value: Any) -> Dict[str, Any]:
        if isinstance(value, dict):
            return value
        model_dump = getattr(value, "model_dump", None)
        if callable(model_dump):
            dumped = model_dump()
            if isinstance(dumped, dict):
                return dumped
        return {}

    @staticmethod
    def _extract_content_parts(parts: List[Any]) -> str:
        content_chunks: List[str] = []
        for part in parts:
            if isinstance(part, str):
                content_chunks.append(part)
            elif isinstance(part, dict) and part.get("text"):
                content_chunks.append(str(part["text"]))
        return "".join(content_chunks)

    @staticmethod
    def _merge_tool_call_chunks(
        pending: Dict[int, Dict[str, Any]], tool_calls: List[Any]
    ) -> None:
        for item in tool_calls:
            if not isinstance(item, dict):
                continue
            index = int(item.get("index", 0) or 0)
            slot = pending.setdefault(
                index, {"id": None, "name": None, "arguments_parts": []}
            )
            if item.get("id"):
                slot["id"] = str(item["id"])
            function = item.get("function") or {}
            if isinstance(function, dict):
                if function.get("name"):
                    slot["name"] = str(function["name"])
                arguments = function.get("arguments")
                if arguments:
                    slot["arguments_parts"].append(str(arguments))

    @staticmethod
    def _flush_ready_tool_calls(pending: Dict[int, Dict[str, Any]]) -> List[Dict[str, Any]]:
        ready: List[Dict[str, Any]] = []
        for index in sorted(pending.keys()):
            entry = pending[index]
            name = entry.get("name")
            if not name:
                continue

            arguments_text = "".join(entry.get("arguments_parts", [])).strip()
            try:
                parsed = json.loads(arguments_text) if arguments_text else {}
            except json.JSONDecodeError:
                logger.warning(
                    "Skipping tool call '%s' due to invalid JSON arguments.", name
                )
                continue
            if not isinstance(parsed, dict):
                parsed = {"value": parsed}

            call_id = entry.get("id") or f"call_{int(time.time() * 1000)}_{index}"
            ready.append({"id": str(call_id), "name": name, "arguments": parsed})
        return ready

    def _map_error(self, exc: Exception) -> ProviderError:
        message = self._format_provider_error(exc)
        kwargs = {"provider_name": self.name, "original_error": exc}
        if isinstance(exc, openai.AuthenticationError):
            return ProviderAuthenticationError(message, **kwargs)
        if isinstance(exc, openai.RateLimitError):
            return ProviderRateLimitError(message, **kwargs)
        if isinstance(exc, openai.APIConnectionError):
            return ProviderConnectionError(message, **kwargs)
        status_code = getattr(exc, "status_code", None)
        return ProviderResponseError(message, status_code=status_code, **kwargs)

    @staticmethod
    def _format_provider_error(exc: Exception) -> str:
        status_code = getattr(exc, "status_code", None)
        body = getattr(exc, "body", None)
        snippet = str(body)[:600] if body is not None else ""

        if status_code is None:
            return f"OpenAI request failed: {exc}"

        status_code = int(status_code)
        reason = {
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            429: "rate_limited",
        }.get(status_code, "api_error")
        if snippet:
            return f"OpenAI API error ({status_code} {reason}). Response snippet: {snippet}"
        return f"OpenAI API error ({status_code} {reason})."
