"""Auth settings validation and object-graph wiring.

Builds the signer, issuer, verifier, refresh store and session service once
per application and installs the request gate. Invalid or missing settings
raise :class:`~library_auth.services._shared.errors.ConfigurationError`, which
aborts :func:`library_auth.factory.create_app`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from flask import Flask, current_app

from library_auth.api.middleware import RequestAuthMiddleware
from library_auth.infra.jwt.signer import Signer, SigningKeys
from library_auth.infra.security.password_hasher import WerkzeugPasswordHasher
from library_auth.infra.sqlalchemy.principal_directory import SQLAlchemyPrincipalDirectory
from library_auth.services._shared.errors import ConfigurationError
from library_auth.services._shared.ports import InMemoryRefreshStore, RefreshStore
from library_auth.services.auth.dto import AuthTokenConfig
from library_auth.services.auth.issuer import TokenIssuer
from library_auth.services.auth.service import AuthSessionService
from library_auth.services.auth.verifier import TokenVerifier

log = logging.getLogger(__name__)

EXTENSION_KEY = "auth_session_service"
REFRESH_STORE_BACKENDS = ("database", "redis", "memory")
_REQUIRED_KEYS = (
    "JWT_ISSUER",
    "JWT_ACCESS_SECRET",
    "JWT_REFRESH_SECRET",
    "JWT_ACCESS_DURATION_MINUTES",
    "JWT_REFRESH_DURATION_MINUTES",
)


def _positive_minutes(config: Mapping[str, Any], key: str) -> int:
    raw = config.get(key)
    try:
        minutes = int(str(raw).strip())
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer number of minutes") from exc
    if minutes <= 0:
        raise ConfigurationError(f"{key} must be positive")
    return minutes


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Validated auth configuration.

    :ivar issuer: ``iss`` claim.
    :ivar access_secret: Base64url access key (decoded by the signer).
    :ivar refresh_secret: Base64url refresh key.
    :ivar access_duration: Access token lifetime.
    :ivar refresh_duration: Refresh token lifetime (longer than access).
    :ivar store_backend: ``database``, ``redis`` or ``memory``.
    :ivar protected_prefix: Path prefix guarded by the request gate.
    """

    issuer: str
    access_secret: str
    refresh_secret: str
    access_duration: timedelta
    refresh_duration: timedelta
    store_backend: str = "database"
    protected_prefix: str = "/api"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> AuthSettings:
        missing = [key for key in _REQUIRED_KEYS if not str(config.get(key) or "").strip()]
        if missing:
            raise ConfigurationError(f"Missing auth configuration: {', '.join(missing)}")

        access = _positive_minutes(config, "JWT_ACCESS_DURATION_MINUTES")
        refresh = _positive_minutes(config, "JWT_REFRESH_DURATION_MINUTES")
        if refresh <= access:
            raise ConfigurationError(
                "JWT_REFRESH_DURATION_MINUTES must be greater than JWT_ACCESS_DURATION_MINUTES"
            )

        backend = str(config.get("REFRESH_STORE_BACKEND") or "database").strip().lower()
        if backend not in REFRESH_STORE_BACKENDS:
            raise ConfigurationError(
                f"REFRESH_STORE_BACKEND must be one of {', '.join(REFRESH_STORE_BACKENDS)}"
            )

        return cls(
            issuer=str(config["JWT_ISSUER"]).strip(),
            access_secret=str(config["JWT_ACCESS_SECRET"]),
            refresh_secret=str(config["JWT_REFRESH_SECRET"]),
            access_duration=timedelta(minutes=access),
            refresh_duration=timedelta(minutes=refresh),
            store_backend=backend,
            protected_prefix=str(config.get("AUTH_PROTECTED_PREFIX") or "/api"),
        )

    def token_config(self) -> AuthTokenConfig:
        return AuthTokenConfig(
            issuer=self.issuer,
            access_expires=self.access_duration,
            refresh_expires=self.refresh_duration,
        )


def build_refresh_store(settings: AuthSettings, app: Flask | None = None) -> RefreshStore:
    """Instantiate the refresh store selected by ``REFRESH_STORE_BACKEND``."""
    if settings.store_backend == "redis":
        from library_auth.core.extensions import get_redis
        from library_auth.infra.redis.redis_refresh_store import RedisRefreshStore

        return RedisRefreshStore(get_redis(app), settings.refresh_duration)
    if settings.store_backend == "memory":
        return InMemoryRefreshStore()

    from library_auth.infra.sqlalchemy.refresh_store import SQLAlchemyRefreshStore

    return SQLAlchemyRefreshStore()


def init_app(app: Flask) -> None:
    """Validate settings, build the auth graph and register the request gate."""
    settings = AuthSettings.from_config(app.config)
    keys = SigningKeys.from_base64url(settings.access_secret, settings.refresh_secret)
    signer = Signer(keys, issuer=settings.issuer)
    directory = SQLAlchemyPrincipalDirectory()
    verifier = TokenVerifier(signer, directory)

    service = AuthSessionService(
        issuer=TokenIssuer(signer, settings.token_config()),
        verifier=verifier,
        directory=directory,
        hasher=WerkzeugPasswordHasher(),
        refresh_store=build_refresh_store(settings, app),
    )
    gate = RequestAuthMiddleware(
        verifier=verifier,
        sessions=service,
        protected_prefix=settings.protected_prefix,
    )
    gate.init_app(app)

    app.extensions[EXTENSION_KEY] = service
    app.extensions["auth_gate"] = gate
    log.info(
        "auth configured",
        extra={"event": "auth.configured", "backend": settings.store_backend},
    )


def get_auth_service() -> AuthSessionService:
    """Return the session service bound to the current application."""
    service = current_app.extensions.get(EXTENSION_KEY)
    if service is None:
        raise RuntimeError("Auth is not initialized. Call library_auth.core.auth.init_app() first.")
    return cast(AuthSessionService, service)
