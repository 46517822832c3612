"""
Question routing.

Questions about uploaded documents are answered from the file context alone,
so the model is not offered any capability tools for them.
"""

DOCUMENT_KEYWORDS = (
    "pdf",
    "document",
    "file",
    "what's in",
    "content",
    "extract",
    "read",
    "analyze",
    "on page",
    "section",
    "in the document",
    "from the file",
)


def is_document_question(message: str) -> bool:
    lowered = (message or "").lower()
    return any(keyword in lowered for keyword in DOCUMENT_KEYWORDS)
