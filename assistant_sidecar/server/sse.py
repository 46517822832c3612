import json
import logging
from typing import Any, Dict

from aiohttp import web

from assistant_sidecar.protocol.events import StreamEventType
from assistant_sidecar.protocol.objects import StreamEvent

logger = logging.getLogger("SSEWriter")

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SSEWriter:
    """
    Event sink that frames each event as ``data: <json>\\n\\n``.

    Once the client has gone away further events are dropped instead of
    raising again from error-reporting paths.
    """

    def __init__(self, response: web.StreamResponse):
        self._response = response
        self.closed = False
        self.error_sent = False

    async def __call__(self, event: StreamEvent) -> None:
        if event.type == StreamEventType.ERROR:
            self.error_sent = True
        await self.send(event.to_dict())

    async def send(self, payload: Dict[str, Any]) -> None:
        if self.closed:
            return
        frame = f"data: {json.dumps(payload, ensure_ascii=False, default=str)}\n\n"
        try:
            await self._response.write(frame.encode("utf-8"))
        except ConnectionResetError:
            self.closed = True
            logger.info("Client disconnected from event stream")
            raise
