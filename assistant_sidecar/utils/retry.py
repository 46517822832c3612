"""
Retry utility for transient failures of non-streaming provider calls.
"""

from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from assistant_sidecar.exceptions.provider import (
    ProviderConnectionError,
    ProviderRateLimitError,
)
import asyncio


def retry_on_transient_errors(max_attempts=3):
    """
    Decorator to retry coroutines on transient errors.

    Retries on:
    - ProviderConnectionError: network failures and timeouts
    - ProviderRateLimitError: HTTP 429 from the provider
    - asyncio.TimeoutError: For general timeouts

    Streaming calls are never wrapped: once tokens reach the UI a retry
    would duplicate them.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(
            (ProviderConnectionError, ProviderRateLimitError, asyncio.TimeoutError)
        ),
        reraise=True,
    )
