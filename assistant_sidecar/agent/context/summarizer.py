#!/usr/bin/env python3
"""
Background Summarizer
=====================
Compacts the turns that fell out of the retained window into a running
summary, using a cheap auxiliary model call.

Compaction is best-effort: the foreground request never awaits it, and a
failed attempt leaves the conversation exactly as it was so the next request
retries with at least as many older turns.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from assistant_sidecar.agent.context.assembler import (
    DEFAULT_MAX_RECENT,
    format_turns,
    split_window,
)
from assistant_sidecar.agent.context.store import ConversationStore
from assistant_sidecar.exceptions.context import (
    ContextValidationError,
    SummarizationError,
)
from assistant_sidecar.providers.base import BaseProvider

DEFAULT_SUMMARY_MODEL = "gpt-4o-mini"

# Cheap model per provider when no summary model is configured; providers
# missing here summarize with the model that served the request.
SUMMARY_MODEL_DEFAULTS = {"openai": DEFAULT_SUMMARY_MODEL}

SUMMARY_INSTRUCTION = """You maintain the running memory of a conversation between a user and an assistant.

Existing summary:
{previous}

Older messages to fold into the summary:
{older}

Write an updated, objective summary of the whole conversation so far in 180-250 words. \
No greetings. Preserve key facts, decisions, open tasks, named entities and the user's \
stated preferences. Return only the updated summary text."""

# (credential, provider id) -> provider for the auxiliary call
ProviderFactory = Callable[[Optional[str], Optional[str]], BaseProvider]


def build_summary_prompt(previous_summary: str, older_text: str) -> str:
    return SUMMARY_INSTRUCTION.format(
        previous=previous_summary or "None", older=older_text
    )


class BackgroundSummarizer:
    """
    Single-flight compaction per conversation id.

    ``schedule`` is the fire-and-forget entry point used by the request path;
    ``maybe_summarize`` is the awaitable body, handy for tests.
    """

    def __init__(
        self,
        store: ConversationStore,
        provider_factory: ProviderFactory,
        max_recent: int = DEFAULT_MAX_RECENT,
        summary_model: Optional[str] = None,
    ):
        if max_recent < 1:
            raise ContextValidationError(
                "max_recent must be at least 1",
                validation_type="max_recent",
                invalid_value=max_recent,
            )
        self._store = store
        self._provider_factory = provider_factory
        self._max_recent = max_recent
        self._summary_model = summary_model
        self._tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger("BackgroundSummarizer")

    def summary_model_for(self, provider: BaseProvider, model_hint: Optional[str]) -> str:
        """Configured model, else the provider's cheap default, else the request's model."""
        model_name = (
            self._summary_model
            or SUMMARY_MODEL_DEFAULTS.get(provider.name)
            or model_hint
        )
        if not model_name:
            raise SummarizationError(f"No summary model for provider {provider.name}")
        return model_name

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        conversation_id: str,
        credential: Optional[str] = None,
        model_hint: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> asyncio.Task:
        """Starts a detached compaction task and returns it without awaiting."""
        task = asyncio.create_task(
            self.maybe_summarize(conversation_id, credential, model_hint, provider_id),
            name=f"summarize:{conversation_id}",
        )
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Waits for in-flight compactions, used on shutdown."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def maybe_summarize(
        self,
        conversation_id: str,
        credential: Optional[str] = None,
        model_hint: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> bool:
        """
        Compacts older turns if there are any and no compaction is running.

        Returns True when a new summary was installed.
        """
        state = self._store.get_or_create(conversation_id)
        older, retained = split_window(state.turns, self._max_recent)
        if not older or state.summarizing:
            return False
        if not self._store.begin_summarization(conversation_id):
            return False

        previous_summary = state.summary

        try:
            provider = self._provider_factory(credential, provider_id)
            model_name = self.summary_model_for(provider, model_hint)
            self._logger.info(
                "Compacting %d older turns of conversation %s with %s/%s",
                len(older),
                conversation_id,
                provider.name,
                model_name,
            )
            prompt = build_summary_prompt(previous_summary, format_turns(older))
            text = (await provider.complete(prompt, model_name)).strip()
            if not text:
                self._logger.warning(
                    "Empty summary for conversation %s; keeping the previous one",
                    conversation_id,
                )
                text = previous_summary
            if not text:
                raise SummarizationError(
                    "Auxiliary model returned no summary", conversation_id
                )
        except asyncio.CancelledError:
            self._store.fail_summarization(conversation_id)
            raise
        except Exception as e:
            self._logger.warning(
                "Summarization failed for conversation %s: %s", conversation_id, e
            )
            self._store.fail_summarization(conversation_id)
            return False

        self._store.complete_summarization(conversation_id, text, retained)
        self._logger.info(
            "Conversation %s compacted; %d turns retained",
            conversation_id,
            len(retained),
        )
        return True
