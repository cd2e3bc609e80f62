"""Flask extension singletons and their binding to an application."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

REDIS_EXTENSION_KEY = "redis_client"

# Constraint names in the migrations are derived from this convention.
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
# Only the login endpoint carries a limit; keyed by client address.
limiter = Limiter(key_func=get_remote_address)


def _connect_redis(url: str) -> redis.Redis:
    client = redis.Redis.from_url(url, socket_timeout=2.0, health_check_interval=30)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Refresh store backend 'redis' is unreachable at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind the database, migrations and limiter; connect Redis when it backs refresh sessions.

    Parameters
    ----------
    app: flask.Flask
        Application being assembled. Importing :mod:`library_auth.models`
        here registers the tables on ``metadata`` for Alembic.

    Raises
    ------
    RuntimeError
        ``REFRESH_STORE_BACKEND`` is ``"redis"`` and the server does not
        answer ``PING``.
    """
    db.init_app(app)

    from library_auth import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)

    redis_url = app.config.get("REDIS_URL")
    if app.config.get("REFRESH_STORE_BACKEND") == "redis" and redis_url:
        app.extensions[REDIS_EXTENSION_KEY] = _connect_redis(redis_url)
    else:
        app.extensions.pop(REDIS_EXTENSION_KEY, None)


def get_redis(app: Flask | None = None) -> redis.Redis:
    """Return the Redis client bound to ``app`` (default: the current app)."""
    target = app or current_app
    client = target.extensions.get(REDIS_EXTENSION_KEY)
    if client is None:
        raise RuntimeError("Redis is not configured: set REFRESH_STORE_BACKEND=redis and REDIS_URL.")
    return client


def redis_available(app: Flask | None = None) -> bool | None:
    """``PING`` the bound Redis client; ``None`` when Redis is not in use."""
    target = app or current_app
    client = target.extensions.get(REDIS_EXTENSION_KEY)
    if client is None:
        return None
    try:
        return bool(client.ping())
    except RedisError:
        target.logger.warning("redis ping failed", exc_info=True, extra={"event": "health.redis_error"})
        return False
