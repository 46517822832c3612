#!/usr/bin/env python3
"""
Sidecar Exceptions Package

Unified exception hierarchy for the assistant sidecar.
"""

# Base exceptions
from .base import SidecarBaseError, wrap_exception

# Provider exceptions
from .provider import (
    ProviderError,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderRateLimitError,
    ProviderResponseError,
)

# Context exceptions
from .context import (
    ContextError,
    ContextValidationError,
    SummarizationError,
)

# Tool exceptions
from .tools import (
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)

# Config / request exceptions
from .config import ConfigError
from .request import RequestValidationError


__all__ = [
    # Base
    "SidecarBaseError",
    "wrap_exception",
    # Provider
    "ProviderError",
    "ProviderAuthenticationError",
    "ProviderConnectionError",
    "ProviderRateLimitError",
    "ProviderResponseError",
    # Context
    "ContextError",
    "ContextValidationError",
    "SummarizationError",
    # Tool
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    # Config / request
    "ConfigError",
    "RequestValidationError",
]
