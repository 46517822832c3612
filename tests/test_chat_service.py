import asyncio

import pytest

from assistant_sidecar.agent.service import ChatService
from assistant_sidecar.agent.structs import ASSISTANT, USER
from assistant_sidecar.exceptions import (
    ProviderAuthenticationError,
    RequestValidationError,
)
from assistant_sidecar.protocol.objects import ChatRequest
from assistant_sidecar.tools import FunctionTool, ToolRegistry

from .conftest import FakeProvider, token


def make_service(settings, store, identity, provider, registry=None):
    calls = []

    def factory(credential, provider_id):
        calls.append((credential, provider_id))
        return provider

    service = ChatService(
        settings,
        store=store,
        registry=registry,
        provider_factory=factory,
        identity_resolver=lambda: identity,
    )
    return service, calls


class TestChatService:
    @pytest.mark.asyncio
    async def test_stream_chat_records_both_turns(self, settings, store, identity, recorder):
        provider = FakeProvider([token("Hi "), token("Ada")])
        service, _ = make_service(settings, store, identity, provider)

        result = await service.stream_chat(
            ChatRequest(message="hello", conversationId="c1"), recorder
        )
        await service.shutdown()

        assert result.success is True
        assert result.response == "Hi Ada"
        assert result.conversation_id == "c1"
        turns = store.get_or_create("c1").turns
        assert [(t.role, t.content) for t in turns] == [
            (USER, "hello"),
            (ASSISTANT, "Hi Ada"),
        ]
        assert recorder.types == ["response_start", "token", "token"]

    @pytest.mark.asyncio
    async def test_second_turn_sees_first_in_context(self, settings, store, identity, recorder):
        provider = FakeProvider([token("Nice to meet you")])
        service, _ = make_service(settings, store, identity, provider)

        await service.stream_chat(
            ChatRequest(message="my name is Ada", conversationId="c1"), recorder
        )
        await service.stream_chat(
            ChatRequest(message="what is my name?", conversationId="c1"), recorder
        )
        await service.shutdown()

        second_prompt = provider.prompts[1]
        assert "User: my name is Ada\nAssistant: Nice to meet you" in second_prompt
        # the new message is appended once, after the context
        assert second_prompt.count("what is my name?") == 1
        assert second_prompt.endswith("what is my name?")
        assert "- User Google Email: person@example.com" in second_prompt

    @pytest.mark.asyncio
    async def test_missing_credential_touches_nothing(self, settings, store, identity, recorder):
        def factory(credential, provider_id):
            raise ProviderAuthenticationError("OPENAI_API_KEY is missing.")

        service = ChatService(
            settings,
            store=store,
            provider_factory=factory,
            identity_resolver=lambda: identity,
        )

        with pytest.raises(ProviderAuthenticationError):
            await service.stream_chat(
                ChatRequest(message="hello", conversationId="c1"), recorder
            )
        assert "c1" not in store
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_failed_turn_keeps_only_user_turn(self, settings, store, identity, recorder):
        provider = FakeProvider([token("par")], error=RuntimeError("boom"))
        service, _ = make_service(settings, store, identity, provider)

        with pytest.raises(RuntimeError):
            await service.stream_chat(
                ChatRequest(message="hello", conversationId="c1"), recorder
            )
        await service.shutdown()

        turns = store.get_or_create("c1").turns
        assert [(t.role, t.content) for t in turns] == [(USER, "hello")]
        assert recorder.types[-1] == "error"

    @pytest.mark.asyncio
    async def test_document_questions_get_no_tools(self, settings, store, identity, recorder):
        registry = ToolRegistry()
        registry.register(FunctionTool("calendar", lambda: [], description="Calendar"))
        provider = FakeProvider([token("ok")])
        service, _ = make_service(settings, store, identity, provider, registry=registry)

        await service.stream_chat(
            ChatRequest(message="Summarize the PDF", fileSummaries=["a pdf"]), recorder
        )
        await service.stream_chat(
            ChatRequest(message="What is on my calendar today?"), recorder
        )
        await service.shutdown()

        assert provider.tools_seen[0] == []
        assert [spec.name for spec in provider.tools_seen[1]] == ["calendar"]
        assert "File Context:\n\na pdf" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_buffered_chat_collects_events(self, settings, store, identity):
        provider = FakeProvider([token("fine")])
        service, _ = make_service(settings, store, identity, provider)

        result = await service.chat(ChatRequest(message="how are you"))
        await service.shutdown()

        assert result.response == "fine"
        assert result.conversation_id == settings.default_conversation_id
        assert [e.type.value for e in result.events] == ["response_start", "token"]
        assert result.to_dict()["conversationId"] == settings.default_conversation_id

    @pytest.mark.asyncio
    async def test_credential_precedence(self, settings, store, identity, recorder):
        provider = FakeProvider([token("x")])
        service, calls = make_service(settings, store, identity, provider)

        await service.stream_chat(
            ChatRequest(message="a", apiKey="body-key", providerId="ollama").model_copy(
                update={"header_credential": "header-key"}
            ),
            recorder,
        )
        await service.stream_chat(
            ChatRequest(message="b").model_copy(update={"header_credential": "header-key"}),
            recorder,
        )
        await service.stream_chat(ChatRequest(message="c"), recorder)
        await service.shutdown()

        assert calls == [
            ("body-key", "ollama"),
            ("header-key", None),
            ("sk-test-key", None),
        ]

    def test_blank_message_is_rejected(self, settings, store, identity):
        service, _ = make_service(settings, store, identity, FakeProvider())
        with pytest.raises(RequestValidationError):
            service.validate(ChatRequest(message="   "))
        with pytest.raises(RequestValidationError):
            service.validate(ChatRequest())

    def test_conversation_id_can_be_required(self, store, identity, settings):
        strict = settings.model_copy(update={"require_conversation_id": True})
        service, _ = make_service(strict, store, identity, FakeProvider())
        with pytest.raises(RequestValidationError):
            service.validate(ChatRequest(message="hi"))
        service.validate(ChatRequest(message="hi", conversationId="c9"))

    @pytest.mark.asyncio
    async def test_compaction_runs_in_background(self, settings, store, identity, recorder):
        provider = FakeProvider([token("ok")], summary="compacted")
        service, _ = make_service(settings, store, identity, provider)

        for i in range(4):
            await service.stream_chat(
                ChatRequest(message=f"q{i}", conversationId="c1"), recorder
            )
        await service.shutdown()
        await asyncio.sleep(0)

        state = store.get_or_create("c1")
        assert state.summary == "compacted"
        assert len(state.turns) <= settings.max_recent_turns + 1

    @pytest.mark.asyncio
    async def test_compaction_follows_request_provider(self, settings, store, identity, recorder):
        summary_models = []

        class LocalProvider(FakeProvider):
            name = "ollama"

            async def complete(self, prompt, model_name):
                summary_models.append(model_name)
                return "compacted"

        provider = LocalProvider([token("ok")])
        service, calls = make_service(settings, store, identity, provider)

        for i in range(4):
            await service.stream_chat(
                ChatRequest(
                    message=f"q{i}", conversationId="c1", providerId="ollama", model="llama3"
                ),
                recorder,
            )
        await service.shutdown()

        assert {provider_id for _, provider_id in calls} == {"ollama"}
        assert summary_models == ["llama3"]
        assert store.get_or_create("c1").summary == "compacted"

    @pytest.mark.asyncio
    async def test_message_is_stored_and_sent_trimmed(self, settings, store, identity, recorder):
        provider = FakeProvider([token("ok")])
        service, _ = make_service(settings, store, identity, provider)

        await service.stream_chat(
            ChatRequest(message="  hello there \n", conversationId="c1"), recorder
        )
        await service.shutdown()

        assert store.get_or_create("c1").turns[0].content == "hello there"
        assert provider.prompts[0].endswith("\n\nhello there")
