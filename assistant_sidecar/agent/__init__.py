from .responder import StreamingResponder, is_oauth_error
from .routing import is_document_question
from .service import ChatService

__all__ = [
    "ChatService",
    "StreamingResponder",
    "is_document_question",
    "is_oauth_error",
]
