"""Logging setup for the pairlink server.

Modules log through ``logging.getLogger(__name__)``; everything under the
``pairlink`` namespace ends up in the handlers installed here.
"""

import logging
from pathlib import Path

from pairlink.config import Config

LOGGER_NAME = "pairlink"

# 2025-01-27 10:30:45 [INFO] message
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None


def _build_handlers(config: Config) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(config: Config) -> logging.Logger:
    """Configure the ``pairlink`` logger from config.

    Only the first call has an effect; later calls return the same logger.
    aiohttp's per-request access log is kept at WARNING unless the server
    runs at DEBUG.
    """
    global _logger

    if _logger is not None:
        return _logger

    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in _build_handlers(config):
        logger.addHandler(handler)
    logger.propagate = False

    if level > logging.DEBUG:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    _logger = logger
    return logger


def reset_logging() -> None:
    """Undo setup_logging(). Used for testing."""
    global _logger
    if _logger is None:
        return

    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()
    _logger.propagate = True
    _logger.setLevel(logging.NOTSET)
    logging.getLogger("aiohttp.access").setLevel(logging.NOTSET)
    _logger = None
