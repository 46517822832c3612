"""
Tool Exception Definitions

Errors raised while invoking external capabilities (calendar, email, search).
"""

from typing import Optional

from .base import SidecarBaseError


class ToolError(SidecarBaseError):
    """Base exception for capability invocation errors."""

    def __init__(self, message: str, tool_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Raised when the model asks for a tool that is not registered or allowed."""

    pass


class ToolExecutionError(ToolError):
    """Raised when a registered tool fails while running."""

    pass
