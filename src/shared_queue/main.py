#!/usr/bin/env python3
"""Main entry point for the shared queue service."""

from __future__ import annotations

import asyncio
import json
import logging
import logging.config
import signal
import sys
from pathlib import Path

from shared_queue.domain.shared.messages import LogTemplates

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.warning(
            "Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH
        )
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    logging.getLogger().setLevel(resolved_level)


async def run(stop_event: asyncio.Event | None = None) -> None:
    """Start the service and keep timers running until SIGINT/SIGTERM."""
    from shared_queue.config.container import create_container
    from shared_queue.config.settings import get_settings

    settings = get_settings()
    container = create_container(settings)
    stop_event = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not available on every platform; KeyboardInterrupt still stops us.
            pass

    try:
        await container.initialize()
        logging.getLogger(__name__).info(LogTemplates.APP_READY)
        await stop_event.wait()
    finally:
        await container.shutdown()


def main() -> int:
    from shared_queue.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(LogTemplates.APP_STARTING.format(environment=settings.environment))

    try:
        asyncio.run(run())
        logger.info(LogTemplates.APP_STOPPED)
        return 0
    except KeyboardInterrupt:
        logger.info(LogTemplates.APP_STOPPED)
        return 0
    except Exception as e:
        logger.exception(LogTemplates.APP_FATAL_ERROR, e)
        return 1


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
