"""
Run the ActionGate-AI server with Uvicorn.

Usage:
    actiongate-ai
    python -m actiongate_ai.server

Host, port and log level come from the server settings
(ACTIONGATE_AI_SERVER_HOST, ACTIONGATE_AI_SERVER_PORT, ACTIONGATE_AI_LOG_LEVEL).
"""

import uvicorn

from .core.config import settings

APP_PATH = "actiongate_ai.server.main:app"


def main() -> None:
    uvicorn.run(
        APP_PATH,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
