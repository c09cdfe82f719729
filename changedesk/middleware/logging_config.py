"""
Logging setup for ChangeDesk.

One stderr handler on the root logger. Production writes one JSON object
per line; development and tests get a short coloured line. ``LOG_LEVEL``
picks the level and ``LOG_FORMAT`` ("json" / "readable") overrides the
format choice.

Inside a request every record is tagged with the request id, the signed-in
viewer and the change request named in the URL, so a single approval can
be followed across the service, store and summarizer logs.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes copied into the JSON line when set
_CONTEXT_FIELDS = (
    "request_id",
    "viewer_id",
    "change_request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

# Third-party loggers kept at WARNING
_QUIET_LOGGERS = ("urllib3", "httpx", "google_genai", "werkzeug", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Attach request id, viewer id and change request id to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        if getattr(record, "viewer_id", None) is None:
            viewer = getattr(g, "viewer", None)
            record.viewer_id = viewer.id if viewer is not None else None
        if getattr(record, "change_request_id", None) is None:
            record.change_request_id = (request.view_args or {}).get("request_id")
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [rid viewer] [12ms]``"""

    _LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._LEVEL_COLORS.get(record.levelname, "")
        line = (
            f"{color}{datetime.now():%H:%M:%S} {record.levelname:<8}{self._RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        tags = [t for t in (getattr(record, "request_id", None), getattr(record, "viewer_id", None)) if t]
        if tags:
            line += f" [{' '.join(tags)}]"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _wants_json(app) -> bool:
    fmt = (app.config.get("LOG_FORMAT") or "").lower()
    if fmt in ("json", "readable"):
        return fmt == "json"
    return not app.config.get("DEBUG", False) and not app.config.get("TESTING", False)


def configure_logging(app):
    """Install the stderr handler; must run before any extension logs."""
    use_json = _wants_json(app)
    level_name = (os.getenv("LOG_LEVEL") or ("INFO" if use_json else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if use_json else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # create_app runs once per test session and once per CLI call; never stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.config.get("TESTING", False):
        app.logger.info("Logging ready: level=%s format=%s", level_name, "json" if use_json else "readable")
