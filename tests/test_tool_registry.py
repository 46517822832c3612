import pytest

from assistant_sidecar.exceptions import ToolExecutionError, ToolNotFoundError
from assistant_sidecar.tools import BaseTool, FunctionTool, ToolRegistry


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo the text back"
    parameters = {"type": "object", "properties": {"text": {"type": "string"}}}

    async def execute(self, text=""):
        return {"echo": text}


class TestToolRegistry:
    def test_disallowed_tools_are_hidden(self):
        registry = ToolRegistry(disallowed=["shell"])
        registry.register(EchoTool())
        registry.register(FunctionTool("shell", lambda: "", description="Run"))

        assert [spec.name for spec in registry.list_tools()] == ["echo"]
        assert registry.get_tool("shell") is None
        assert registry.is_allowed("echo")

    def test_schema_for_model(self):
        spec = EchoTool().schema.to_openai()
        assert spec["type"] == "function"
        assert spec["function"]["name"] == "echo"
        assert spec["function"]["parameters"]["properties"]["text"]["type"] == "string"

    def test_tool_without_name_is_rejected(self):
        with pytest.raises(ValueError):
            ToolRegistry().register(FunctionTool("", lambda: None))

    @pytest.mark.asyncio
    async def test_execute_async_and_sync_tools(self):
        registry = ToolRegistry()
        registry.register(EchoTool())
        registry.register(FunctionTool("add", lambda a, b: a + b))

        assert await registry.execute("echo", {"text": "hi"}) == {"echo": "hi"}
        assert await registry.execute("add", {"a": 2, "b": 3}) == 5

    @pytest.mark.asyncio
    async def test_execute_unknown_or_disallowed(self):
        registry = ToolRegistry(disallowed=["echo"])
        registry.register(EchoTool())
        with pytest.raises(ToolNotFoundError):
            await registry.execute("echo", {})
        with pytest.raises(ToolNotFoundError):
            await registry.execute("missing")

    @pytest.mark.asyncio
    async def test_tool_failure_is_wrapped(self):
        async def broken():
            raise RuntimeError("Error loading OAuth keys")

        registry = ToolRegistry()
        registry.register(FunctionTool("calendar", broken))
        with pytest.raises(ToolExecutionError) as exc_info:
            await registry.execute("calendar")
        assert exc_info.value.message == "Error loading OAuth keys"
        assert isinstance(exc_info.value.original_error, RuntimeError)
