"""Authentication endpoints using the session service."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, request

from library_auth.api.deps import json_response, require_auth, timing
from library_auth.api.middleware import REFRESH_TOKEN_HEADER
from library_auth.core.auth import get_auth_service
from library_auth.core.errors import Unauthorized
from library_auth.core.extensions import limiter
from library_auth.schemas import LoginSchema, TokenPairSchema, WhoAmISchema
from library_auth.services.auth.dto import AuthenticatedIdentity, LoginIn, LogoutIn

log = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
token_schema = TokenPairSchema()
whoami_schema = WhoAmISchema()

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service()
    try:
        outcome = service.login(LoginIn(username=data["username"], password=data["password"]))
    except Exception:
        # store or directory outage: alertable, but the client only sees 401
        log.exception("login failed unexpectedly", extra={"event": "auth.login.error"})
        raise Unauthorized(INVALID_CREDENTIALS_MESSAGE, code="invalid_credentials") from None

    if not outcome.ok or outcome.value is None:
        raise Unauthorized(INVALID_CREDENTIALS_MESSAGE, code="invalid_credentials")
    return json_response(token_schema.dump(outcome.value))


@bp.post("/logout")
@timing
def logout():
    """End the session named by the ``Refresh-Token`` header. Always succeeds."""

    service = get_auth_service()
    try:
        service.logout(LogoutIn(refresh_token=request.headers.get(REFRESH_TOKEN_HEADER)))
    except Exception:
        log.exception("logout failed unexpectedly", extra={"event": "auth.logout.error"})
    return json_response({"message": "Successfully logged out"})


@bp.get("/whoami")
@require_auth
@timing
def whoami(*, identity: AuthenticatedIdentity):
    """Return the identity resolved from the access token."""

    return json_response(whoami_schema.dump(identity))
