"""Central logging configuration.

Usage:
    from utils.logging_config import configure_logging
    configure_logging(json_logs=False, level="INFO")

Idempotent: safe to call multiple times. Modules log through ``loguru.logger``;
this only decides where those records go. Standard-library ``logging`` records
(e.g. from third-party libraries) are forwarded into the same sink.
"""
from __future__ import annotations
import logging
import os
import sys
from typing import Optional

from loguru import logger

from utils.settings import get_settings

_CONFIGURED = False

PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name} | {message}"


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage())


def configure_logging(json_logs: Optional[bool] = None, level: Optional[str] = None) -> None:
    """Install a single loguru sink on stderr (plus optional file sink).

    Arguments left as None fall back to ``Settings`` (``LABVIZ_JSON_LOGGING`` /
    ``LABVIZ_LOG_LEVEL``). A rotating file sink is added when
    ``LABVIZ_LOG_FILE`` is set.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    settings = get_settings()
    json_logs = settings.json_logging if json_logs is None else json_logs
    level = (level or settings.log_level).upper()

    logger.remove()
    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=PLAIN_FORMAT)

    log_file = os.getenv('LABVIZ_LOG_FILE')
    if log_file:
        logger.add(log_file, level=level, serialize=json_logs, rotation="5 MB", retention=3)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    _CONFIGURED = True


def reset_logging() -> None:
    """Allow configure_logging to run again (tests switching formats)."""
    global _CONFIGURED
    _CONFIGURED = False


__all__ = ["configure_logging", "reset_logging"]
