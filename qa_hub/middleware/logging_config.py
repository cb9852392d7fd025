"""
Logging setup for the QA Testing Hub.

One stderr handler on the root logger, formatted as
    - JSON lines in production (one object per record, aggregator friendly)
    - colored single lines in development and under tests

Every record emitted while a request is being served is stamped with the
request's id, method and path by RequestContextFilter, so a service line
such as "Execution recorded id=EXE-0004" can be tied back to its request.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Attributes copied into JSON output when present on a record
CONTEXT_FIELDS = ("request_id", "method", "path", "status", "duration_ms", "remote_addr")

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "urllib3")


class RequestContextFilter(logging.Filter):
    """Attach request_id / method / path to records logged inside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if not getattr(record, "request_id", None):
                record.request_id = getattr(g, "request_id", None)
            if not getattr(record, "method", None):
                record.method = request.method
            if not getattr(record, "path", None):
                record.path = request.path
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [rid]: message [12ms]`` with a colored level."""

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, use_color: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"\033[{self.LEVEL_COLORS.get(record.levelno, '0')}m{level}\033[0m"
        line = f"{self.formatTime(record, self.datefmt)} {level} {record.name}"
        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" [{request_id}]"
        line += f": {record.getMessage()}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _default_level(app) -> str:
    if app.config.get("TESTING"):
        return "WARNING"
    return "DEBUG" if app.config.get("DEBUG") else "INFO"


def configure_logging(app):
    """
    Install the root handler for ``app``.

    LOG_LEVEL overrides the default (DEBUG in development, WARNING under
    tests, INFO in production). Safe to call once per created app; the root
    handlers are replaced, not stacked.
    """
    json_output = not app.config.get("DEBUG") and not app.config.get("TESTING")
    level_name = os.getenv("LOG_LEVEL", _default_level(app)).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if json_output else ReadableFormatter(sys.stderr.isatty()))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.debug("Logging ready: level=%s json=%s", level_name, json_output)
