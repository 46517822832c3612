"""
Request Exception Definitions

Errors detected before any conversation state is touched.
"""

from typing import Optional

from .base import SidecarBaseError


class RequestValidationError(SidecarBaseError):
    """Raised when an incoming chat request is missing required fields."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message, user_hint=message)
        self.field_name = field_name
