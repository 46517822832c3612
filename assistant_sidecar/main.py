#!/usr/bin/env python3
"""
Sidecar entry point.

Loads settings, installs logging and serves the HTTP app until the desktop
shell stops the process.
"""

import logging
import sys

from aiohttp import web
from pydantic import ValidationError

from assistant_sidecar.config.settings import get_settings
from assistant_sidecar.exceptions.config import ConfigError
from assistant_sidecar.server.app import create_app, endpoint_summary
from assistant_sidecar.utils.logger import setup_logging
from assistant_sidecar.utils.sensitive_str import SensitiveStr

logger = logging.getLogger("Sidecar")


def main() -> int:
    try:
        settings = get_settings()
    except ConfigError as e:
        setup_logging()
        logger.error("Configuration error: %s", e.message)
        return 1
    except ValidationError as e:
        setup_logging()
        logger.error("Invalid settings: %s", e)
        return 1

    setup_logging(settings.log_level)

    app = create_app(settings)
    logger.info("Agent sidecar listening on http://%s:%d", settings.host, settings.agent_port)
    for endpoint, description in endpoint_summary().items():
        logger.info("  %s - %s", endpoint, description)
    logger.info(
        "Provider: %s, default model: %s, API key: %s",
        settings.llm_provider,
        settings.default_model,
        SensitiveStr(settings.openai_api_key).mask_for_display(),
    )

    web.run_app(
        app,
        host=settings.host,
        port=settings.agent_port,
        handler_cancellation=True,
        print=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
