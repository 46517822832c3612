from .app import CHAT_SERVICE, create_app, endpoint_summary
from .sse import SSE_HEADERS, SSEWriter

__all__ = ["CHAT_SERVICE", "create_app", "endpoint_summary", "SSE_HEADERS", "SSEWriter"]
