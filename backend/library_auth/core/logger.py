"""JSON logging for the auth service.

Every record is one JSON object on stdout carrying the request id of the
request that produced it. Structured fields are passed through ``extra=`` and
copied only when whitelisted in :data:`EXTRA_KEYS`; anything shaped like a JWT
that reaches a message is masked by :class:`TokenRedactionFilter`.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Never add token values here.
EXTRA_KEYS = (
    "event",
    "principal",
    "error_kind",
    "error_code",
    "status",
    "reason",
    "removed",
    "endpoint",
    "elapsed_ms",
    "backend",
)

_JWT_RE = re.compile(r"eyJ[\w-]*\.[\w-]*\.[\w-]*")
_REQUEST_ID_RE = re.compile(r"^[\w.:-]{1,128}$")
REDACTED = "[redacted-token]"


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on each record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


class TokenRedactionFilter(logging.Filter):
    """Mask compact JWTs in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if _JWT_RE.search(message):
            record.msg = _JWT_RE.sub(REDACTED, message)
            record.args = None
        return True


def _incoming_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header, "").strip()
        # echoed back in a response header, so only accept plain identifiers
        if value and _REQUEST_ID_RE.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """Return the request id of the current request, assigning one on first use."""
    if not has_request_context():
        return str(uuid4())
    if "request_id" not in g:
        g.request_id = _incoming_request_id() or str(uuid4())
    return g.request_id  # type: ignore[no-any-return]


def configure_logging(level: str | int = "INFO") -> None:
    """Route the root logger to stdout as JSON at ``level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    handler.addFilter(TokenRedactionFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Assign request ids early and echo them on every response."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = [
    "EXTRA_KEYS",
    "JSONFormatter",
    "RequestIdFilter",
    "TokenRedactionFilter",
    "configure_logging",
    "ensure_request_id",
    "init_app",
]
