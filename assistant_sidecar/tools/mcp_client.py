"""
Capability tools served by an MCP stdio server (calendar, mail, drive...).

The server is spawned for each request and closed afterwards, so a crashed
capability process never leaves the sidecar holding a dead session.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from assistant_sidecar.exceptions import ToolExecutionError
from assistant_sidecar.tools.base import BaseTool
from assistant_sidecar.tools.registry import ToolRegistry

logger = logging.getLogger("MCPTools")


class StdioMCPServer:
    """Connection parameters for one stdio MCP server."""

    def __init__(
        self,
        name: str,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Path] = None,
    ):
        self.name = name
        self.command = command
        self.args = list(args or [])
        self.cwd = cwd
        # PATH and friends must survive for launchers like uv or npx
        self.full_env = os.environ.copy()
        self.full_env.update(env or {})

    @classmethod
    def from_settings(cls, settings) -> Optional["StdioMCPServer"]:
        if not settings.mcp_command:
            return None
        return cls(
            name=settings.mcp_server_name,
            command=settings.mcp_command,
            args=settings.mcp_args,
            env=settings.mcp_env,
            cwd=settings.mcp_cwd,
        )

    def parameters(self) -> StdioServerParameters:
        return StdioServerParameters(
            command=self.command,
            args=self.args,
            env=self.full_env,
            cwd=str(self.cwd) if self.cwd else None,
        )

    async def list_tools(self) -> List[Any]:
        async with stdio_client(self.parameters()) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
                result = await session.list_tools()
                return list(result.tools)

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        async with stdio_client(self.parameters()) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
                return await session.call_tool(tool_name, arguments)


class MCPTool(BaseTool):
    """Registry adapter for one tool advertised by an MCP server."""

    def __init__(
        self,
        server: StdioMCPServer,
        name: str,
        description: Optional[str] = None,
        input_schema: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.description = description or ""
        self.parameters = input_schema or {"type": "object", "properties": {}}
        self._server = server

    async def execute(self, **kwargs) -> Any:
        result = await self._server.call_tool(self.name, kwargs)
        return self.render_result(result)

    def render_result(self, result: Any) -> Any:
        """Text content of a call result; an error result raises with the server's text."""
        texts = [
            item.text
            for item in getattr(result, "content", None) or []
            if getattr(item, "text", None)
        ]
        text = "\n".join(texts)
        if getattr(result, "isError", False):
            raise ToolExecutionError(
                text or f"{self.name} reported an error", tool_name=self.name
            )
        structured = getattr(result, "structuredContent", None)
        if not texts and structured is not None:
            return structured
        return text


async def load_mcp_tools(registry: ToolRegistry, server: StdioMCPServer) -> int:
    """Registers every tool the server advertises; returns how many it offered."""
    tools = await server.list_tools()
    for tool in tools:
        registry.register(
            MCPTool(
                server,
                name=tool.name,
                description=getattr(tool, "description", None),
                input_schema=getattr(tool, "inputSchema", None),
            )
        )
    logger.info(
        "Loaded %d tools from MCP server %s (%d allowed)",
        len(tools),
        server.name,
        len(registry.list_tools()),
    )
    return len(tools)
