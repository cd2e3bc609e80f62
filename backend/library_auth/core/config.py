"""Environment-driven configuration classes, selected by ``APP_ENV``."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"  # development | testing | production
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "y", "on"})

# no-op when there is no .env file
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read ``name`` as a flag; ``default`` when unset.

    Parameters
    ----------
    name: str
        Environment variable.
    default: bool, optional
        Result for an unset variable.

    Returns
    -------
    bool
        ``True`` for ``1/true/yes/y/on`` in any case, ``False`` otherwise.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


class BaseConfig:
    """Settings common to every environment.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Mount point of the versioned blueprints (``/api/v1/...``).
    AUTH_PROTECTED_PREFIX: str
        Requests under this path go through the token gate.
    JWT_ISSUER: str | None
        ``iss`` claim written into and required from every token.
    JWT_ACCESS_SECRET / JWT_REFRESH_SECRET: str | None
        Independent base64url-encoded HMAC secrets (at least 256 bits each).
    JWT_ACCESS_DURATION_MINUTES / JWT_REFRESH_DURATION_MINUTES: str | None
        Token lifetimes in minutes. All five ``JWT_*`` keys are mandatory;
        :func:`library_auth.core.auth.init_app` refuses to start without them.
    REFRESH_STORE_BACKEND: str
        ``"database"`` (default), ``"redis"`` or ``"memory"``.
    REDIS_URL: str | None
        Connection string used when the Redis backend is selected.
    AUTH_LOGIN_RATE_LIMIT: str
        Flask-Limiter expression applied to the login endpoint.
    USE_PROXYFIX: bool
        Trust one ``X-Forwarded-*`` hop so rate limits see client addresses.
    """

    API_BASE_PREFIX = "/api"
    AUTH_PROTECTED_PREFIX = os.getenv("AUTH_PROTECTED_PREFIX", "/api")

    # Token signing
    JWT_ISSUER = os.getenv("JWT_ISSUER")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
    JWT_ACCESS_DURATION_MINUTES = os.getenv("JWT_ACCESS_DURATION_MINUTES")
    JWT_REFRESH_DURATION_MINUTES = os.getenv("JWT_REFRESH_DURATION_MINUTES")

    # Refresh sessions
    REFRESH_STORE_BACKEND = os.getenv("REFRESH_STORE_BACKEND", "database")
    REDIS_URL = os.getenv("REDIS_URL")

    # Login throttling
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", False)

    # Members and refresh records
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./library.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CORS_MAX_AGE = 600

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Local development: debug on.

    Token settings still come from the environment or ``.env``; there are no
    baked-in development secrets.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Test runs.

    In-memory SQLite, fixed 256-bit secrets so the auth graph builds without
    any environment, and no login throttling.
    """

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    PROPAGATE_EXCEPTIONS = True
    RATELIMIT_ENABLED = False

    JWT_ISSUER = "library-test"
    JWT_ACCESS_SECRET = "YWNjZXNzLXNlY3JldC1mb3ItdGVzdHMtMDEyMzQ1Njc4OWFiY2RlZg"
    JWT_REFRESH_SECRET = "cmVmcmVzaC1zZWNyZXQtZm9yLXRlc3RzLTAxMjM0NTY3ODlhYmNkZWY"
    JWT_ACCESS_DURATION_MINUTES = "15"
    JWT_REFRESH_DURATION_MINUTES = "10080"
    REFRESH_STORE_BACKEND = "database"
    REDIS_URL = None


class ProductionConfig(BaseConfig):
    """Production: no debug, no SQL echo; the database backend persists sessions."""

    SQLALCHEMY_ECHO = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the class named by ``APP_ENV`` (``DevelopmentConfig`` when unset or unknown)."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
