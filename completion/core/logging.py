"""Logging configuration for the completion service.

Two output formats share one root handler on stdout:

  _ContainerFormatter: single-line, human-readable, for local runs.
  _JsonFormatter: one JSON object per line, for log aggregation in
    production.  Enabled with LOG_JSON=true.

Context fields (request_id, user_id, course_id, ...) are attached to log
records either by RequestContextFilter or through ``extra=`` at the call
site, and the JSON formatter promotes them to top-level keys.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

# Set per request by RequestContextMiddleware.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestContextFilter(logging.Filter):
    """Copies the current request ID onto every record the handler sees.

    Installed on the handler rather than the root logger: logger filters
    are skipped for records propagated up from child loggers.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for container stdout.

    WARNING and above get a ``[filename:lineno]`` suffix.
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # milliseconds go before the +HHMM offset
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON-lines formatter.

    Known context fields are copied from the record when present so they
    can be filtered on directly (``course_id == 42``).
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "user_id",
        "course_id",
        "queue",
        "task_id",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: debug/info/warning/error. Unknown names fall back to info.
        json_format: emit JSON lines instead of the single-line text format.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # SQL echo and server access logs stay at WARNING unless asked for more
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "sqlalchemy.engine",
        "httpx",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
