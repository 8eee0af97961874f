"""Context-carrying logging for serverless handlers.

Lines look like::

    2026-10-18T09:12:44.120Z WARNING req-42 orders attempt 1/3 failed: ...

where ``req-42 orders`` are the context values bound with :func:`get_logger`
(``N/A`` when none are bound).
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Optional, TextIO

LOGGER_NAME = "flowctl_core"
LOG_LEVEL_ENV = "FLOWCTL_LOG_LEVEL"
_FORMAT = "%(asctime)s %(levelname)s %(context)s %(message)s"
_HANDLER_NAME = "flowctl_core.console"


class UtcIsoFormatter(logging.Formatter):
    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        ct = self.converter(record.created)
        return "%s.%03dZ" % (time.strftime("%Y-%m-%dT%H:%M:%S", ct), record.msecs)


class ContextFilter(logging.Filter):
    """Make sure every record has a ``context`` field, even from plain loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "context"):
            record.context = "N/A"
        return True


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter rendering its bound context in front of the message."""

    def __init__(self, logger: logging.Logger, context: Optional[dict] = None):
        super().__init__(logger, dict(context or {}))

    @property
    def context(self) -> dict:
        return dict(self.extra)

    def bind(self, **context: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **context})

    def process(self, msg, kwargs):
        values = [str(v) for v in self.extra.values() if v is not None]
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = " ".join(values) if values else "N/A"
        kwargs["extra"] = extra
        return msg, kwargs


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    if name == "WARN":
        name = "WARNING"
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Optional[str] = None, stream: Optional[TextIO] = None
) -> logging.Logger:
    """Attach a single console handler to the package logger.

    Calling it again replaces the handler installed by the previous call.
    """
    resolved = _resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    for h in list(logger.handlers):
        if h.get_name() == _HANDLER_NAME:
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(resolved)
    handler.setFormatter(UtcIsoFormatter(_FORMAT))
    handler.addFilter(ContextFilter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = LOGGER_NAME, **context: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), context)
