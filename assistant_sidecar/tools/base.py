"""
Base classes and interfaces for capability tools.

Capabilities (calendar, email, file search) live outside the sidecar; a
tool here is the thin adapter the model calls through.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from assistant_sidecar.agent.structs import ToolSpec


class BaseTool(ABC):
    """Abstract base every registered tool implements."""

    name: str = ""
    description: str = ""
    parameters: Dict[str, Any] = {"type": "object", "properties": {}}

    @property
    def schema(self) -> ToolSpec:
        return ToolSpec(
            name=self.name, description=self.description, parameters=self.parameters
        )

    @abstractmethod
    async def execute(self, **kwargs) -> Any:
        """Run the tool and return its output payload."""
        pass


class FunctionTool(BaseTool):
    """Wraps a plain (sync or async) callable as a tool."""

    def __init__(
        self,
        name: str,
        func: Callable[..., Any],
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.description = description or (inspect.getdoc(func) or "")
        self.parameters = parameters or {"type": "object", "properties": {}}
        self._func = func

    async def execute(self, **kwargs) -> Any:
        result = self._func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

