"""Logging configuration using Loguru."""

import logging
import sys
from pathlib import Path

from loguru import logger

from comment_sync.config import LoggingConfig

# Stdlib loggers of the HTTP stack, capped at WARNING
NOISY_LOGGERS = ("httpx", "httpcore")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{line} - {message}"


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure Loguru sinks for a sync run.

    Console output goes to stderr. When enabled, a rotating file sink
    receives the same records, JSON-serialized by default with the bound
    extra context (discussion_id, node_id, ...).

    Args:
        config: Logging section of the main configuration
    """
    logger.remove()
    logger.configure(extra={"module": "comment_sync"})

    logger.add(
        sys.stderr,
        level=config.level,
        format=CONSOLE_FORMAT,
        colorize=True,
    )

    if config.log_to_file:
        log_path = Path(config.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "comment_sync_{time:YYYY-MM-DD}.log",
            level=config.level,
            format=FILE_FORMAT,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression=config.compression,
            serialize=config.serialize,
            enqueue=True,
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str):
    """Get a logger bound to a module name."""
    return logger.bind(module=name)
