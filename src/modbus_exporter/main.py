"""
Application entrypoint.

Uvicorn ASGI server.
"""

import sys

import uvicorn

from modbus_exporter import __version__
from modbus_exporter.app import create_app
from modbus_exporter.config import settings
from modbus_exporter.errors import ConfigError
from modbus_exporter.logging import get_logger

logger = get_logger(__name__)


def main() -> None:
    """Load the configuration and serve until interrupted."""
    logger.info(f"Starting modbus exporter {__version__}")
    try:
        app = create_app()
    except ConfigError as e:
        logger.error(f"Error loading config: {e}")
        sys.exit(1)

    logger.info(f"Listening on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
