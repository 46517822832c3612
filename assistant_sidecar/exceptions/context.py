"""
Context Exception Definitions

All conversation-memory exceptions inherit from SidecarBaseError.
"""

from typing import Any

from .base import SidecarBaseError


class ContextError(SidecarBaseError):
    """Base exception for conversation memory errors."""

    pass


class ContextValidationError(ContextError):
    """Raised when a turn or store argument fails validation."""

    def __init__(
        self, message: str, validation_type: str = None, invalid_value: Any = None
    ):
        super().__init__(message)
        self.validation_type = validation_type
        self.invalid_value = invalid_value


class SummarizationError(ContextError):
    """Raised when a compaction attempt cannot produce a usable summary."""

    def __init__(
        self,
        message: str,
        conversation_id: str = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error=original_error)
        self.conversation_id = conversation_id
