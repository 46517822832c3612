"""Provider factory helpers."""

from __future__ import annotations

import logging
from typing import Optional

from assistant_sidecar.config.settings import Settings
from assistant_sidecar.providers.base import BaseProvider
from assistant_sidecar.tools.registry import ToolRegistry

logger = logging.getLogger("ProviderFactory")


def create_provider(
    settings: Settings,
    credential: Optional[str] = None,
    provider_id: Optional[str] = None,
    registry: Optional[ToolRegistry] = None,
) -> BaseProvider:
    """
    Instantiate the provider for one request.

    ``provider_id`` from the request wins over the configured provider; an
    unknown id falls back to OpenAI with a warning.
    """
    provider_name = (provider_id or settings.llm_provider or "openai").strip().lower()

    if provider_name == "ollama":
        from assistant_sidecar.providers.ollama import OllamaProvider

        return OllamaProvider(
            host=settings.ollama_host,
            api_key=credential,
            registry=registry,
            temperature=settings.temperature,
            max_steps=settings.max_tool_steps,
        )

    if provider_name != "openai":
        logger.warning(
            "Provider '%s' is not wired; using the OpenAI provider.", provider_name
        )

    from assistant_sidecar.providers.openai_provider import OpenAIProvider

    return OpenAIProvider(
        api_key=credential,
        base_url=settings.openai_base_url,
        registry=registry,
        temperature=settings.temperature,
        max_steps=settings.max_tool_steps,
        timeout=settings.request_timeout,
    )
