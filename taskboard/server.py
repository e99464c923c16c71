"""Process entry point: configure logging and serve the app with uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

from taskboard.config import ConfigError, load_config
from taskboard.logging_setup import setup_logging
from taskboard.main import create_app

DEFAULT_PROCESS_HOST = "127.0.0.1"
DEFAULT_PROCESS_PORT = "18170"

logger = logging.getLogger(__name__)


def _process_port(raw_port: str) -> int:
    try:
        port = int(raw_port)
    except ValueError:
        raise ConfigError("PROCESS_PORT must be an integer.") from None
    if not 0 < port < 65536:
        raise ConfigError("PROCESS_PORT must be between 1 and 65535.")
    return port


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)

    process_host = os.getenv("PROCESS_HOST", DEFAULT_PROCESS_HOST).strip() or DEFAULT_PROCESS_HOST
    process_port = _process_port(
        os.getenv("PROCESS_PORT", DEFAULT_PROCESS_PORT).strip() or DEFAULT_PROCESS_PORT
    )

    logger.info(
        "starting task service host=%s port=%s store=%s",
        process_host,
        process_port,
        config.store_backend,
    )
    uvicorn.run(
        create_app(config),
        host=process_host,
        port=process_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
