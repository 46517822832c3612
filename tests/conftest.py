"""Shared fakes for the sidecar test suite."""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import pytest

from assistant_sidecar.agent.context.store import ConversationStore
from assistant_sidecar.agent.structs import ProviderSignal, ToolSpec
from assistant_sidecar.config.settings import Settings
from assistant_sidecar.protocol.events import SignalType
from assistant_sidecar.providers.base import BaseProvider
from assistant_sidecar.utils.credential_store import AccountIdentity


def token(text: str) -> ProviderSignal:
    return ProviderSignal(SignalType.TOKEN, data=text)


def tool_start(name: str, data: Any = None) -> ProviderSignal:
    return ProviderSignal(SignalType.TOOL_START, data=data, name=name)


def tool_end(name: str, data: Any = None) -> ProviderSignal:
    return ProviderSignal(SignalType.TOOL_END, data=data, name=name)


class FakeProvider(BaseProvider):
    """
    Scripted provider: ``stream_events`` replays ``signals`` and then raises
    ``error`` if one is set; ``complete`` returns ``summary``.
    """

    name = "fake"

    def __init__(
        self,
        signals: Optional[Sequence[ProviderSignal]] = None,
        error: Optional[Exception] = None,
        summary: str = "S",
        summary_error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.signals = list(signals or [])
        self.error = error
        self.summary = summary
        self.summary_error = summary_error
        self.gate = gate
        self.prompts: List[str] = []
        self.tools_seen: List[List[ToolSpec]] = []
        self.summary_prompts: List[str] = []
        self.complete_calls = 0
        self.closed = False

    async def stream_events(
        self,
        prompt: str,
        model_name: str,
        tools: Optional[Sequence[ToolSpec]] = None,
        options: Optional[Dict[str, Any]] = None,
    ):
        self.prompts.append(prompt)
        self.tools_seen.append(list(tools or []))
        try:
            yield ProviderSignal(SignalType.MODEL_START, data={"model": model_name})
            for signal in self.signals:
                await asyncio.sleep(0)
                yield signal
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True

    async def complete(self, prompt: str, model_name: str) -> str:
        self.complete_calls += 1
        self.summary_prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary


class EventRecorder:
    """Event sink that keeps everything it receives."""

    def __init__(self):
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [event.type.value for event in self.events]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-test-key",
        llm_provider="openai",
        log_level="INFO",
        max_recent_turns=6,
        max_conversations=None,
        google_mcp_credentials_dir=None,
    )


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def identity() -> AccountIdentity:
    return AccountIdentity(email="person@example.com", scopes=["calendar", "gmail"])


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
