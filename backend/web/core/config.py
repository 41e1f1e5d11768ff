"""Configuration constants for the Turnspace web backend."""

import logging

from config.schema import TurnspaceSettings

DEFAULT_PORT = 8001
PORT_ENV = "TURNSPACE_BACKEND_PORT"

# SSE response headers: disable proxy buffering for real-time streaming
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}

# Build log tail
LOG_POLL_INTERVAL_SEC = 0.5
EVENT_RETRY_MS = 5000

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: TurnspaceSettings) -> None:
    logging.basicConfig(level=settings.logging.level, format=LOG_FORMAT)
