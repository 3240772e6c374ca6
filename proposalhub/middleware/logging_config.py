"""
Logging setup for proposalhub.

Two output shapes share one handler on the root logger:

    readable  coloured single-line records for local runs and tests
    json      one JSON object per record for log shipping (production default)

LOG_LEVEL and LOG_FORMAT (config or env) override the defaults. Every record
emitted inside a request is stamped with ``request_id`` and ``tenant_id`` by
``RequestContextFilter``; services add ``proposal_id``, ``tracking_id`` and
``event_type`` through ``extra=``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

CONTEXT_FIELDS = (
    "request_id",
    "tenant_id",
    "proposal_id",
    "tracking_id",
    "event_type",
)
HTTP_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "reportlab", "urllib3")


class RequestContextFilter(logging.Filter):
    """Copy the request id and authenticated tenant onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "tenant_id", None) is None:
                tenant = getattr(g, "tenant", None)
                record.tenant_id = tenant.id if tenant is not None else getattr(g, "jwt_tenant_id", None)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_FIELDS + HTTP_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:01:07 INFO     proposalhub.x: message [p=4 trk=track_ab] [12ms]``"""

    COLORS = {
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

    def _context(self, record) -> str:
        parts = []
        for key, label in (("proposal_id", "p"), ("tracking_id", "trk"), ("event_type", "ev")):
            val = getattr(record, key, None)
            if val is not None:
                parts.append(f"{label}={val}")
        return f" [{' '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        duration = getattr(record, "duration_ms", None)
        timing = f" [{duration:.0f}ms]" if duration is not None else ""
        line = f"{ts} {level} {record.name}: {record.getMessage()}{self._context(record)}{timing}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the root handler for ``app``.

    Production (neither DEBUG nor TESTING) defaults to JSON at INFO; other
    environments get readable output at DEBUG.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL")
                  or ("INFO" if is_prod else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = (app.config.get("LOG_FORMAT") or os.getenv("LOG_FORMAT")
           or ("json" if is_prod else "readable")).lower()

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter(use_color=sys.stderr.isatty()))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # create_app runs more than once per process under pytest
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
