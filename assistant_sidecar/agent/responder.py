import asyncio
import logging
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from assistant_sidecar.agent.structs import ProviderSignal, ToolSpec
from assistant_sidecar.protocol.events import SignalType, StreamEventType
from assistant_sidecar.protocol.objects import EventSink, StreamEvent
from assistant_sidecar.providers.base import BaseProvider
from assistant_sidecar.utils.logger import stringify_preview

logger = logging.getLogger("StreamingResponder")

OAUTH_ERROR_SIGNATURES = (
    "OAuth credentials not found",
    "Error loading OAuth keys",
    "google-calendar-mcp",
)
OAUTH_PROVIDER = "google_calendar"
OAUTH_HINT = "Google Calendar OAuth is required to use this tool."
OAUTH_AUTH_URL = "https://console.cloud.google.com/apis/credentials"


def is_oauth_error(message: str) -> bool:
    return any(signature in message for signature in OAUTH_ERROR_SIGNATURES)


class StreamingResponder:
    """
    Drives one model invocation and forwards its lifecycle to a sink.

    State over the signal sequence:
    - model_start: logged only.
    - tool_start / tool_end: forwarded; start times are kept as a stack per
      tool name so repeated calls to one tool pair with their own end.
    - token: ``response_start`` before the first one, then one ``token``
      event per chunk as received.
    """

    def __init__(
        self,
        provider: BaseProvider,
        model_name: str,
        tools: Optional[Sequence[ToolSpec]] = None,
        options: Optional[Dict[str, Any]] = None,
        clock=time.monotonic,
    ):
        self._provider = provider
        self._model_name = model_name
        self._tools = list(tools or [])
        self._options = options
        self._clock = clock
        self._tool_starts: Dict[str, List[float]] = defaultdict(list)
        self._chunks: List[str] = []
        self._response_started = False
        # (tool name, duration seconds or None when the end had no start)
        self.tool_timings: List[Tuple[str, Optional[float]]] = []

    async def run(self, prompt: str, sink: EventSink) -> str:
        """Consumes the provider stream and returns the trimmed final text."""
        self._tool_starts.clear()
        self._chunks = []
        self._response_started = False
        self.tool_timings = []

        signals = self._provider.stream_events(
            prompt, self._model_name, tools=self._tools, options=self._options
        )
        try:
            async for signal in signals:
                await self._handle(signal, sink)
        except asyncio.CancelledError:
            logger.info("Response cancelled after %d chars", self.char_count)
            raise
        except Exception as e:
            await self._report_failure(e, sink)
            raise
        finally:
            # Stops the underlying HTTP stream when we leave early
            aclose = getattr(signals, "aclose", None)
            if aclose is not None:
                await aclose()

        if self._response_started:
            logger.info("[LLM COMPLETE] totalChars=%d", self.char_count)
        return "".join(self._chunks).strip()

    @property
    def char_count(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    async def _handle(self, signal: ProviderSignal, sink: EventSink) -> None:
        if signal.type == SignalType.MODEL_START:
            logger.info("[LLM START] %s", stringify_preview(signal.data))

        elif signal.type == SignalType.TOOL_START:
            tool = signal.name or "unknown_tool"
            self._tool_starts[tool].append(self._clock())
            logger.info("[TOOL START] %s input=%s", tool, stringify_preview(signal.data))
            await sink(
                StreamEvent(
                    type=StreamEventType.TOOL_START,
                    content=f"🔧 {tool} started",
                    tool=tool,
                    input=signal.data,
                )
            )

        elif signal.type == SignalType.TOOL_END:
            tool = signal.name or "unknown_tool"
            starts = self._tool_starts.get(tool)
            duration = None
            if starts:
                duration = max(self._clock() - starts.pop(), 0.0)
            else:
                logger.warning("[TOOL END] %s without a matching start", tool)
            self.tool_timings.append((tool, duration))
            logger.info(
                "[TOOL END] %s duration=%s output=%s",
                tool,
                f"{duration:.3f}s" if duration is not None else "n/a",
                stringify_preview(signal.data),
            )
            await sink(
                StreamEvent(
                    type=StreamEventType.TOOL_END,
                    content=f"✅ {tool} completed",
                    tool=tool,
                    output=signal.data,
                )
            )

        elif signal.type == SignalType.TOKEN:
            text = signal.data if isinstance(signal.data, str) else ""
            if not text:
                return
            if not self._response_started:
                self._response_started = True
                logger.info("[LLM STREAM] first token received")
                await sink(
                    StreamEvent(type=StreamEventType.RESPONSE_START, content="Response:")
                )
            self._chunks.append(text)
            await sink(StreamEvent(type=StreamEventType.TOKEN, content=text))

        else:
            logger.debug("Ignoring unknown provider signal: %s", signal.type)

    async def _report_failure(self, error: Exception, sink: EventSink) -> None:
        message = str(error) or error.__class__.__name__
        logger.error("Agent error: %s", message)
        if is_oauth_error(message):
            await sink(
                StreamEvent(
                    type=StreamEventType.OAUTH_REQUIRED,
                    provider=OAUTH_PROVIDER,
                    content=OAUTH_HINT,
                    auth_url=OAUTH_AUTH_URL,
                )
            )
        await sink(
            StreamEvent(
                type=StreamEventType.ERROR,
                content="Error during processing",
                error=message,
            )
        )
