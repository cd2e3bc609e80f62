"""Liveness of the service and of the stores it authenticates against."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from library_auth.api.deps import json_response, timing
from library_auth.core.extensions import db, redis_available

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database status and, when Redis backs refresh sessions, its status too."""
    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    payload = {
        "status": "ok",
        "db": db_status,
        "refresh_store": current_app.config.get("REFRESH_STORE_BACKEND", "database"),
    }
    redis_up = redis_available()
    if redis_up is not None:
        payload["redis"] = "ok" if redis_up else "fail"
    return json_response(payload)
