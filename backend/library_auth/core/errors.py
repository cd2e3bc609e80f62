"""Problem+json (RFC 7807) rendering for every error the API returns."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from marshmallow import ValidationError
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from library_auth.core.logger import ensure_request_id

log = logging.getLogger(__name__)

BEARER_CHALLENGE = 'Bearer realm="library"'

# Outages of the backing stores surface as 503, never as an auth failure.
UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (OperationalError, RedisError)


def _status_code_name(status: int) -> str:
    """Return a stable snake_case code for ``status`` (``429 -> too_many_requests``)."""
    try:
        return HTTPStatus(status).name.lower()
    except ValueError:
        return "error"


def problem_document(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a Problem Details body.

    ``detail`` and ``error`` carry the same client-safe message: the flat
    ``error`` field is what browser clients of the login form read.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable summary, safe to show to clients.
    :param details: Optional structured payload.
    :returns: Problem+JSON dictionary.
    """
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "error": message,
        "code": code,
        "instance": request.path if has_request_context() else None,
        "request_id": ensure_request_id(),
    }
    if details:
        body["details"] = details
    return body


def problem_response(body: dict[str, Any]) -> tuple[Response, int]:
    """Serialize ``body`` as ``application/problem+json``.

    401 responses advertise the bearer scheme through ``WWW-Authenticate``.
    """
    resp = jsonify(body)
    resp.mimetype = "application/problem+json"
    status = int(body["status"])
    if status == HTTPStatus.UNAUTHORIZED:
        resp.headers["WWW-Authenticate"] = BEARER_CHALLENGE
    return resp, status


def _log_problem(body: dict[str, Any], *, exc_info: bool = False) -> None:
    status = int(body["status"])
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(
        level,
        "request failed: %s",
        body["code"],
        exc_info=exc_info,
        extra={
            "event": "http.error",
            "status": status,
            "error_code": body["code"],
            "endpoint": request.endpoint if has_request_context() else None,
        },
    )


class APIError(Exception):
    """
    An error the API answers with a problem document.

    Parameters
    ----------
    message : str
        Client-safe description.
    status_code : int, optional
        HTTP status. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Extra structured payload.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem_document(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )

    def to_response(self) -> tuple[Response, int]:
        """Render and log the error from hooks that bypass Flask's error handlers."""
        body = self.to_problem()
        _log_problem(body)
        return problem_response(body)


class Unauthorized(APIError):
    """401 for a failed login or a rejected credential.

    ``code`` is one of the coarse client codes (``invalid_credentials``,
    ``token_expired``, ``invalid_token``, ``session_invalid``) or the
    default ``unauthorized`` for a missing credential.
    """

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class Forbidden(APIError):
    """403 when the authenticated role is not allowed."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


def init_app(app: Flask) -> None:
    """
    Register the JSON error handlers.

    Notes
    -----
    - Every handled error leaves as ``application/problem+json`` with the
      request id of the failing request.
    - 4xx are logged as warnings, 5xx as errors with traceback where one exists.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        body = err.to_problem()
        _log_problem(body)
        return problem_response(body)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = _status_code_name(status)
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or HTTPStatus(status).phrase).strip()
        body = problem_document(status=status, code=code, message=message)
        _log_problem(body)
        return problem_response(body)

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        body = problem_document(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        _log_problem(body)
        return problem_response(body)

    def handle_unavailable(err: Exception):
        body = problem_document(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        _log_problem(body, exc_info=True)
        return problem_response(body)

    for exc_type in UNAVAILABLE_ERRORS:
        app.register_error_handler(exc_type, handle_unavailable)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # never leak internals
        body = problem_document(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        _log_problem(body, exc_info=True)
        return problem_response(body)
