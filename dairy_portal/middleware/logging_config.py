"""
Structured logging configuration.

Production writes one JSON object per line; development and tests get a
short coloured line.  Inside a request every record is stamped with the
request id and the authenticated user, so workflow events
(``logger.info(..., extra={"draft_id": ...})``) can be joined with the
request timing line.

Level: LOG_LEVEL from app config, then the environment.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Structured ``extra={...}`` keys emitted when present on a record
EXTRA_KEYS = (
    "request_id",
    "user_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "role",
    "upload_id",
    "draft_id",
    "draft_number",
    "template_id",
)

# Keys worth showing on a readable line; the rest stay JSON-only
_READABLE_KEYS = ("request_id", "user_id", "upload_id", "draft_id", "draft_number", "template_id")

_HANDLER_NAME = "dairy_portal"


def record_context(record: logging.LogRecord) -> dict:
    """The structured fields carried by ``record``, None values dropped."""
    ctx = {}
    for key in EXTRA_KEYS:
        val = getattr(record, key, None)
        if val is not None and val != "":
            ctx[key] = val
    return ctx


class RequestContextFilter(logging.Filter):
    """Stamp ``request_id`` / ``user_id`` from ``flask.g`` onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                user = getattr(g, "current_user", None)
                record.user_id = user.id if user is not None else None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "src": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message key=value [12ms]``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        ctx = record_context(record)
        pairs = " ".join(f"{k}={ctx[k]}" for k in _READABLE_KEYS if k in ctx)
        line = f"{ts} {level} {record.name}: {record.getMessage()}"
        if pairs:
            line += f" {pairs}"
        if "duration_ms" in ctx:
            line += f" [{ctx['duration_ms']:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the portal's stderr handler on the root logger.

    Replaces a handler installed by an earlier ``create_app`` call and
    leaves any other handlers (pytest's capture, gunicorn's) in place.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(
        JSONFormatter() if is_prod else ReadableFormatter(use_color=sys.stderr.isatty())
    )

    root = logging.getLogger()
    for old in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if is_prod else "readable")
