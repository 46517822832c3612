#!/usr/bin/env python3
"""
Base Exception Contract for the Assistant Sidecar

Provides the single source of truth for the sidecar error contract.
All domain-specific exceptions must inherit from SidecarBaseError.
"""

from typing import Optional


class SidecarBaseError(Exception):
    """
    The Base Contract for all sidecar errors.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        user_hint: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.user_hint = user_hint or "An internal error occurred."
        self.details = details or {}


def wrap_exception(exception_class, user_hint=None):
    """
    Decorator that catches generic exceptions in a coroutine and re-raises
    them as the specific SidecarBaseError subclass.
    """

    def decorator(func):
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SidecarBaseError:
                raise
            except Exception as e:
                raise exception_class(
                    message=str(e), original_error=e, user_hint=user_hint
                ) from e

        return wrapper

    return decorator
