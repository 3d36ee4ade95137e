"""Run the order engine webhook server: ``python -m wali``."""
from __future__ import annotations

import sys

from aiohttp import web

from logging_config import logger
from wali.core.bootstrap import build_services, create_app
from wali.core.config import load_settings
from wali.core.exceptions import ConfigurationException
from wali.core.sentry_integration import init_sentry


def main() -> None:
    try:
        settings = load_settings()
    except ConfigurationException as e:
        logger.error(f"Invalid configuration: {e.message}")
        sys.exit(1)

    if settings.sentry_enabled:
        init_sentry(environment=settings.environment)

    services = build_services(settings)
    app = create_app(services)

    logger.info(f"Starting Wali order engine on {settings.host}:{settings.port}")
    web.run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
