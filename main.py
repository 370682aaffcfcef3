"""
Warehouse wizard entry point.

Serves the HTTP API (chat, stored configuration, visualization, export)
or runs the wizard in the terminal for development.

Usage:
    API server:   python main.py serve
    Console mode: python main.py console
"""

import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _run_server_mode() -> None:
    """Start the FastAPI app under uvicorn."""
    import uvicorn

    from src.api import create_app

    logger.info("Starting %s on %s:%d", settings.app_name, settings.server.host, settings.server.port)
    uvicorn.run(create_app(), host=settings.server.host, port=settings.server.port)


def _run_console_mode() -> None:
    """Start the terminal wizard."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server_mode()
