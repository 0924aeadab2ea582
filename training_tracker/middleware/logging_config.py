"""
Structured logging for the tracker.

Two renderings of the same records:
    json      one object per line, for the log shipper (production default)
    readable  coloured single line for a terminal (development / testing)

``LOG_FORMAT`` forces either one; ``LOG_LEVEL`` sets the threshold.
Workflow services log with ``extra={"entity_type", "entity_id", "action",
"actor_id", "status"}``; both formatters surface those fields, and every
record emitted during a request carries that request's ``request_id``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import Flask, g, has_request_context

# Record attributes promoted into JSON output when present
STRUCTURED_FIELDS = (
    "request_id",
    "actor_id",
    "entity_type",
    "entity_id",
    "action",
    "status",
    "error_kind",
    "method",
    "path",
    "duration_ms",
    "remote_addr",
)

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "flask_limiter", "urllib3")


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` from ``g`` onto records that lack one."""

    def filter(self, record):
        if getattr(record, "request_id", None) is None and has_request_context():
            record.request_id = getattr(g, "request_id", None)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:01:07 INFO     training_tracker.services...: msg  [nomination:4 approve by 2]``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    @staticmethod
    def _context(record):
        parts = []
        entity_type = getattr(record, "entity_type", None)
        if entity_type:
            parts.append(f"{entity_type}:{getattr(record, 'entity_id', None) or '-'}")
        action = getattr(record, "action", None)
        if action:
            parts.append(str(action))
        actor_id = getattr(record, "actor_id", None)
        if actor_id is not None:
            parts.append(f"by {actor_id}")
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"{duration:.0f}ms")
        return f"  [{' '.join(parts)}]" if parts else ""

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = (f"{color}{ts} {record.levelname:<8}{self.RESET} "
                f"{record.name}: {record.getMessage()}{self._context(record)}")
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(is_prod):
    forced = os.getenv("LOG_FORMAT", "").strip().lower()
    if forced in ("json", "readable"):
        return forced
    return "json" if is_prod else "readable"


def configure_logging(app: Flask):
    """Install one root handler for the app; safe to call once per ``create_app``."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = _resolve_format(is_prod)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ReadableFormatter())
    handler.addFilter(RequestIdFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
