"""Admin-only endpoints, gated by role after the token gate has run."""

from __future__ import annotations

from flask import Blueprint

from library_auth.api.deps import json_response, require_role, timing
from library_auth.services.auth.dto import AuthenticatedIdentity, Role

bp = Blueprint("admin", __name__)


@bp.get("/ping")
@require_role(Role.ADMIN)
@timing
def ping(*, identity: AuthenticatedIdentity):
    return json_response({"message": "pong", "username": identity.username})
