import json
import logging
import sys
from typing import Any

LOG_FORMAT = "[sidecar] %(asctime)s %(name)s %(levelname)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Installs a single stderr handler on the root logger.

    The desktop shell captures the sidecar's stderr, so nothing is written
    to files. Calling it twice does not duplicate handlers.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers:
        if getattr(handler, "_sidecar_handler", False):
            handler.setLevel(level)
            return root

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    console._sidecar_handler = True
    root.addHandler(console)

    # aiohttp logs every request at INFO through its own access logger
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    return root


def stringify_preview(value: Any, max_len: int = 300) -> str:
    """Short single-line rendering of a payload for log lines."""
    try:
        as_string = value if isinstance(value, str) else json.dumps(value, default=str)
    except (TypeError, ValueError):
        return "[unserializable]"
    if not as_string:
        return ""
    return as_string[:max_len] + "…" if len(as_string) > max_len else as_string
