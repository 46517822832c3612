import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from assistant_sidecar.agent.context.assembler import (
    build_preamble,
    build_prompt,
    render_context,
)
from assistant_sidecar.agent.context.store import ConversationStore
from assistant_sidecar.agent.context.summarizer import BackgroundSummarizer
from assistant_sidecar.agent.responder import StreamingResponder
from assistant_sidecar.agent.routing import is_document_question
from assistant_sidecar.agent.structs import ASSISTANT, USER
from assistant_sidecar.config.settings import Settings
from assistant_sidecar.exceptions.request import RequestValidationError
from assistant_sidecar.protocol.objects import (
    ChatRequest,
    ChatResult,
    EventSink,
    StreamEvent,
)
from assistant_sidecar.providers.base import BaseProvider
from assistant_sidecar.providers.factory import create_provider
from assistant_sidecar.tools.registry import ToolRegistry
from assistant_sidecar.utils.credential_store import AccountIdentity, resolve_identity
from assistant_sidecar.utils.logger import stringify_preview
from assistant_sidecar.utils.sensitive_str import SensitiveStr

# (credential, provider id) -> provider for one request
ProviderFactory = Callable[[Optional[str], Optional[str]], BaseProvider]


@dataclass
class PreparedTurn:
    conversation_id: str
    credential: Optional[str]
    prompt: str
    responder: StreamingResponder


class ChatService:
    """
    Orchestrates one chat request end to end.

    Responsibility:
    1. Resolve conversation id and credential.
    2. Render context from the state as it was before this message.
    3. Record the user turn and kick off background compaction.
    4. Run the responder (streaming or buffered).
    5. Record the assistant turn on a clean finish.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[ConversationStore] = None,
        registry: Optional[ToolRegistry] = None,
        provider_factory: Optional[ProviderFactory] = None,
        summarizer: Optional[BackgroundSummarizer] = None,
        identity_resolver: Optional[Callable[[], AccountIdentity]] = None,
    ):
        self._settings = settings
        self._store = (
            store if store is not None else ConversationStore(settings.max_conversations)
        )
        self._registry = (
            registry if registry is not None else ToolRegistry(settings.disallowed_tool_names)
        )
        self._provider_factory = provider_factory or self._default_provider
        self._summarizer = summarizer or BackgroundSummarizer(
            self._store,
            self._provider_factory,
            max_recent=settings.max_recent_turns,
            summary_model=settings.summary_model,
        )
        self._identity_resolver = identity_resolver or (
            lambda: resolve_identity(settings.credentials_dir)
        )
        self._logger = logging.getLogger("ChatService")

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def summarizer(self) -> BackgroundSummarizer:
        return self._summarizer

    def _default_provider(
        self, credential: Optional[str], provider_id: Optional[str]
    ) -> BaseProvider:
        return create_provider(self._settings, credential, provider_id, self._registry)

    # --- Resolution ---

    def resolve_conversation_id(self, request: ChatRequest) -> str:
        conversation_id = request.conversation_id or request.header_conversation_id
        if conversation_id:
            return conversation_id
        if self._settings.require_conversation_id:
            raise RequestValidationError(
                "conversationId is required", field_name="conversationId"
            )
        self._logger.warning(
            "No conversation id supplied; sharing fallback conversation '%s'",
            self._settings.default_conversation_id,
        )
        return self._settings.default_conversation_id

    def resolve_credential(self, request: ChatRequest) -> Optional[str]:
        return (
            request.credential
            or request.header_credential
            or self._settings.openai_api_key
        )

    # --- Request paths ---

    async def stream_chat(self, request: ChatRequest, sink: EventSink) -> ChatResult:
        """Runs one turn, forwarding lifecycle events to ``sink`` as they occur."""
        prepared = await self._prepare(request)
        final_text = await prepared.responder.run(prepared.prompt, sink)
        self._store.append_turn(prepared.conversation_id, ASSISTANT, final_text)
        return ChatResult(
            success=True, response=final_text, conversation_id=prepared.conversation_id
        )

    async def chat(self, request: ChatRequest) -> ChatResult:
        """Buffered variant: same ordering, events collected internally."""
        events: List[StreamEvent] = []

        async def collect(event: StreamEvent) -> None:
            events.append(event)

        result = await self.stream_chat(request, collect)
        result.events = events
        return result

    def validate(self, request: ChatRequest) -> None:
        """Fails fast on input errors, before any state or model call."""
        if not (request.message or "").strip():
            raise RequestValidationError("Message is required", field_name="message")
        if (
            self._settings.require_conversation_id
            and not (request.conversation_id or request.header_conversation_id)
        ):
            raise RequestValidationError(
                "conversationId is required", field_name="conversationId"
            )

    async def _prepare(self, request: ChatRequest) -> PreparedTurn:
        self.validate(request)
        message = request.message.strip()

        conversation_id = self.resolve_conversation_id(request)
        credential = self.resolve_credential(request)
        self._logger.info(
            "Using API key: %s", SensitiveStr(credential).mask_for_display()
        )
        self._logger.info(
            "Processing message for %s: %s",
            conversation_id,
            stringify_preview(message),
        )

        # Provider construction rejects a missing credential before any state changes
        provider = self._provider_factory(credential, request.provider_id)

        state = self._store.get_or_create(conversation_id)
        context = render_context(state, self._settings.max_recent_turns)

        model_name = request.model or self._settings.default_model
        self._store.append_turn(conversation_id, USER, message)
        self._summarizer.schedule(
            conversation_id, credential, model_name, request.provider_id
        )

        identity = await asyncio.to_thread(self._identity_resolver)
        preamble = build_preamble(request.system_prompt or self._settings.system_prompt, identity)
        prompt = build_prompt(preamble, context, request.file_summaries, message)

        document_mode = is_document_question(message)
        self._logger.info(
            "Question type: %s",
            "Document (no tools)" if document_mode else "Action (tools enabled)",
        )
        tools = [] if document_mode else self._registry.list_tools()
        responder = StreamingResponder(
            provider,
            model_name,
            tools=tools,
        )
        return PreparedTurn(
            conversation_id=conversation_id,
            credential=credential,
            prompt=prompt,
            responder=responder,
        )

    async def shutdown(self) -> None:
        await self._summarizer.drain()
