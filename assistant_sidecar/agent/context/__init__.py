from .assembler import (
    build_preamble,
    build_prompt,
    render_context,
    render_file_context,
    split_window,
)
from .store import ConversationStore
from .summarizer import BackgroundSummarizer

__all__ = [
    "BackgroundSummarizer",
    "ConversationStore",
    "build_preamble",
    "build_prompt",
    "render_context",
    "render_file_context",
    "split_window",
]
