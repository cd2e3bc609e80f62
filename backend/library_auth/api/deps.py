"""View decorators and response helpers shared by the v1 blueprints."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request

from library_auth.api.middleware import current_decision
from library_auth.core.errors import Forbidden, Unauthorized
from library_auth.services.auth.dto import AuthenticatedIdentity, Role

View = TypeVar("View", bound=Callable[..., Any])


def json_response(payload: Any, *, status: int = 200) -> Response:
    resp = jsonify(payload)
    resp.status_code = status
    return resp


def timing(view: View) -> View:
    """Log the view's wall time (ms) at DEBUG with its endpoint."""

    @functools.wraps(view)
    def wrapper(*args: Any, **kwargs: Any):
        started = time.perf_counter()
        try:
            return view(*args, **kwargs)
        finally:
            current_app.logger.debug(
                "view timed",
                extra={
                    "event": "request.elapsed",
                    "endpoint": request.endpoint,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )

    return wrapper  # type: ignore[return-value]


def _gate_identity() -> AuthenticatedIdentity:
    identity = current_decision().identity
    if identity is None:
        raise Unauthorized("Authentication required")
    return identity


def require_auth(view: View) -> View:
    """Reject anonymous requests; the view receives ``identity=AuthenticatedIdentity``."""

    @functools.wraps(view)
    def wrapper(*args: Any, **kwargs: Any):
        return view(*args, identity=_gate_identity(), **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(*allowed: Role) -> Callable[[View], View]:
    """:func:`require_auth` plus a 403 unless the identity holds one of ``allowed``."""

    def decorator(view: View) -> View:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any):
            identity = _gate_identity()
            if identity.role not in allowed:
                raise Forbidden("Insufficient role")
            return view(*args, identity=identity, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
