from .base import BaseTool, FunctionTool
from .mcp_client import MCPTool, StdioMCPServer, load_mcp_tools
from .registry import ToolRegistry

__all__ = [
    "BaseTool",
    "FunctionTool",
    "MCPTool",
    "StdioMCPServer",
    "ToolRegistry",
    "load_mcp_tools",
]
