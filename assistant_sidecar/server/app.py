"""
HTTP transport for the sidecar.

    POST /api/chat/stream  - one chat turn as a server-sent event stream
    POST /api/chat         - one chat turn, buffered JSON response
    GET  /api/health       - liveness
    GET  /api/tools        - capability tools the model may call
"""

import logging
from typing import Any, Dict, Optional

from aiohttp import web
from pydantic import ValidationError

from assistant_sidecar.agent.service import ChatService
from assistant_sidecar.config.settings import Settings
from assistant_sidecar.exceptions.request import RequestValidationError
from assistant_sidecar.protocol.events import StreamEventType
from assistant_sidecar.protocol.objects import ChatRequest, StreamEvent, utc_timestamp
from assistant_sidecar.server.sse import SSE_HEADERS, SSEWriter
from assistant_sidecar.tools.mcp_client import StdioMCPServer, load_mcp_tools

logger = logging.getLogger("SidecarServer")

CHAT_SERVICE = web.AppKey("chat_service", ChatService)
MCP_SERVER = web.AppKey("mcp_server", StdioMCPServer)

CREDENTIAL_HEADER = "X-OpenAI-Key"
CONVERSATION_HEADER = "X-Conversation-Id"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        f"Content-Type, Cache-Control, {CREDENTIAL_HEADER}, {CONVERSATION_HEADER}"
    ),
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@web.middleware
async def request_logger(request: web.Request, handler):
    logger.info("%s %s", request.method, request.path)
    return await handler(request)


@web.middleware
async def cors(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    response = await handler(request)
    # Streamed responses already sent their headers
    if not response.prepared:
        response.headers.update(CORS_HEADERS)
    return response


async def _parse_chat_request(request: web.Request) -> ChatRequest:
    try:
        body = await request.json()
    except ValueError as e:
        raise RequestValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise RequestValidationError("Request body must be a JSON object")
    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(f"Invalid request: {e.errors()[0]['msg']}") from e
    return chat_request.model_copy(
        update={
            "header_credential": request.headers.get(CREDENTIAL_HEADER),
            "header_conversation_id": request.headers.get(CONVERSATION_HEADER),
        }
    )


def _bad_request(error: RequestValidationError) -> web.Response:
    return web.json_response({"error": error.message}, status=400)


async def chat_stream(request: web.Request) -> web.StreamResponse:
    service = request.app[CHAT_SERVICE]
    try:
        chat_request = await _parse_chat_request(request)
        service.validate(chat_request)
    except RequestValidationError as e:
        return _bad_request(e)

    response = web.StreamResponse(status=200, headers={**SSE_HEADERS, **CORS_HEADERS})
    await response.prepare(request)
    writer = SSEWriter(response)

    try:
        await writer.send({"type": StreamEventType.START.value})
        result = await service.stream_chat(chat_request, writer)
        logger.info(
            "Turn complete for %s (%d chars)",
            result.conversation_id,
            len(result.response),
        )
        await writer(StreamEvent(type=StreamEventType.COMPLETE))
    except ConnectionResetError:
        return response
    except Exception as e:
        logger.error("Streaming error: %s", e, exc_info=True)
        if not writer.error_sent:
            try:
                await writer(
                    StreamEvent(
                        type=StreamEventType.ERROR,
                        content="Sorry, I encountered an error while processing your request.",
                        error=str(e) or e.__class__.__name__,
                    )
                )
            except ConnectionResetError:
                return response

    try:
        await writer.send({"type": StreamEventType.END.value})
        await response.write_eof()
    except ConnectionResetError:
        pass
    return response


async def chat(request: web.Request) -> web.Response:
    service = request.app[CHAT_SERVICE]
    try:
        chat_request = await _parse_chat_request(request)
        service.validate(chat_request)
    except RequestValidationError as e:
        return _bad_request(e)

    try:
        result = await service.chat(chat_request)
    except Exception as e:
        logger.error("Chat error: %s", e, exc_info=True)
        return web.json_response(
            {"error": "Failed to process message", "details": str(e)}, status=500
        )
    return web.json_response(result.to_dict())


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": utc_timestamp()})


async def list_tools(request: web.Request) -> web.Response:
    service = request.app[CHAT_SERVICE]
    tools = [
        {"name": spec.name, "description": spec.description}
        for spec in service.registry.list_tools()
    ]
    return web.json_response({"tools": tools})


async def _load_capabilities(app: web.Application) -> None:
    server = app[MCP_SERVER]
    try:
        await load_mcp_tools(app[CHAT_SERVICE].registry, server)
    except Exception as e:
        # Chat keeps working without capabilities; tools are simply not offered
        logger.error("Could not load tools from MCP server %s: %s", server.name, e)


async def _shutdown(app: web.Application) -> None:
    await app[CHAT_SERVICE].shutdown()


def create_app(
    settings: Settings,
    service: Optional[ChatService] = None,
    mcp_server: Optional[StdioMCPServer] = None,
) -> web.Application:
    app = web.Application(middlewares=[cors, request_logger])
    app[CHAT_SERVICE] = service or ChatService(settings)
    mcp_server = mcp_server or StdioMCPServer.from_settings(settings)
    if mcp_server is not None:
        app[MCP_SERVER] = mcp_server
        app.on_startup.append(_load_capabilities)
    app.router.add_post("/api/chat/stream", chat_stream)
    app.router.add_post("/api/chat", chat)
    app.router.add_get("/api/health", health)
    app.router.add_get("/api/tools", list_tools)
    app.on_cleanup.append(_shutdown)
    return app


def endpoint_summary() -> Dict[str, Any]:
    return {
        "POST /api/chat/stream": "Send a message (streaming)",
        "POST /api/chat": "Send a message (buffered)",
        "GET /api/health": "Health check",
        "GET /api/tools": "List available tools",
    }
