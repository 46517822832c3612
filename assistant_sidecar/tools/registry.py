"""
Tool Registry - registration, filtering and execution of capability tools.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from assistant_sidecar.agent.structs import ToolSpec
from assistant_sidecar.exceptions import ToolExecutionError, ToolNotFoundError, wrap_exception
from assistant_sidecar.tools.base import BaseTool


class ToolRegistry:
    """Holds the tools the model may call, minus the disallowed ones."""

    def __init__(self, disallowed: Optional[Iterable[str]] = None):
        self.logger = logging.getLogger(__name__)
        self._tools: Dict[str, BaseTool] = {}
        self._disallowed = set(disallowed or [])

    def register(self, tool: BaseTool) -> None:
        if not tool.name:
            raise ValueError("Tool must have a name")
        if tool.name in self._tools:
            self.logger.warning("Replacing already registered tool: %s", tool.name)
        self._tools[tool.name] = tool

    def is_allowed(self, name: str) -> bool:
        return name in self._tools and name not in self._disallowed

    def get_tool(self, name: str) -> Optional[BaseTool]:
        if not self.is_allowed(name):
            return None
        return self._tools[name]

    def list_tools(self) -> List[ToolSpec]:
        """Schemas of every allowed tool, in registration order."""
        return [
            tool.schema for name, tool in self._tools.items() if self.is_allowed(name)
        ]

    async def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        tool = self.get_tool(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool not available: {name}", tool_name=name)
        return await self._run(tool, arguments or {})

    @wrap_exception(ToolExecutionError, user_hint="A connected capability failed.")
    async def _run(self, tool: BaseTool, arguments: Dict[str, Any]) -> Any:
        return await tool.execute(**arguments)
