#!/usr/bin/env python3
"""
Provider Exception Classes
==========================

Errors raised by the model-invocation capability (main streaming call and
the auxiliary summarization call).
"""

from typing import Optional
from .base import SidecarBaseError


class ProviderError(SidecarBaseError):
    """
    Base exception for all provider-related errors.
    """

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        model_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)

        if "provider_name" not in self.details and provider_name:
            self.details["provider_name"] = provider_name
        if "model_name" not in self.details and model_name:
            self.details["model_name"] = model_name


class ProviderAuthenticationError(ProviderError):
    """
    Raised when no credential is available or the provider rejects it.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "Authentication with the model provider failed. "
            "Provide an API key in settings or in the request."
        )


class ProviderConnectionError(ProviderError):
    """
    Raised when the provider cannot be reached (network, timeout).
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "The model provider is unreachable. "
            "Please check your internet connection and try again."
        )


class ProviderRateLimitError(ProviderError):
    """
    Raised when the provider answers with HTTP 429.
    """

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        self.user_hint = "Rate limit exceeded. Please wait a moment and retry."


class ProviderResponseError(ProviderError):
    """
    Raised when the provider returns an error status or an unusable payload.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        if status_code is not None:
            self.details.setdefault("status_code", status_code)
