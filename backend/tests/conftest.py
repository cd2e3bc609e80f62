"""Pytest fixtures: an isolated Flask app per test plus in-memory auth graphs.

Each application gets its own in-memory SQLite database, so rows committed by
the refresh store or factories never leak between cases.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from flask import Flask

from library_auth.core.config import TestingConfig
from library_auth.core.extensions import db as _db
from library_auth.factory import create_app
from library_auth.infra.jwt.signer import Signer, SigningKeys
from library_auth.infra.security.password_hasher import WerkzeugPasswordHasher
from library_auth.services._shared.ports import (
    InMemoryPrincipalDirectory,
    InMemoryRefreshStore,
)
from library_auth.services.auth.dto import AuthTokenConfig, Principal, Role
from library_auth.services.auth.issuer import TokenIssuer
from library_auth.services.auth.service import AuthSessionService
from library_auth.services.auth.verifier import TokenVerifier
from tests.helpers.auth import PASSWORD_HASH


# ------------------------------ Flask app --------------------------------- #
@pytest.fixture()
def app() -> Generator[Flask, None, None]:
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application with :class:`TestingConfig` applied, an app context
        pushed and the schema created.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    application = create_app(TestingConfig)
    application.logger.setLevel("WARNING")
    with application.app_context():
        _db.create_all()
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(app: Flask):
    """Return the Flask-scoped session and wire Factory Boy to it."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(_db.session)
    yield _db.session
    SQLAlchemySession.set(None)


@pytest.fixture()
def client(app: Flask):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture()
def auth_service(app: Flask) -> AuthSessionService:
    """The session service wired by the application factory."""
    return app.extensions["auth_session_service"]


@pytest.fixture()
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# ------------------------- In-memory auth graph --------------------------- #
@pytest.fixture()
def signing_keys() -> SigningKeys:
    return SigningKeys.from_base64url(
        TestingConfig.JWT_ACCESS_SECRET, TestingConfig.JWT_REFRESH_SECRET
    )


@pytest.fixture()
def signer(signing_keys: SigningKeys) -> Signer:
    return Signer(signing_keys, issuer="library-test")


@pytest.fixture()
def token_config() -> AuthTokenConfig:
    return AuthTokenConfig(
        issuer="library-test",
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )


@pytest.fixture()
def issuer(signer: Signer, token_config: AuthTokenConfig) -> TokenIssuer:
    return TokenIssuer(signer, token_config)


@pytest.fixture()
def issuer_at(signer: Signer, token_config: AuthTokenConfig) -> Callable[[datetime], TokenIssuer]:
    """Build an issuer whose clock is pinned to ``when``."""

    def _factory(when: datetime) -> TokenIssuer:
        return TokenIssuer(signer, token_config, now=lambda: when)

    return _factory


@pytest.fixture()
def long_ago() -> datetime:
    return datetime.now(UTC) - timedelta(days=30)


@pytest.fixture()
def alice() -> Principal:
    return Principal(username="alice", role=Role.USER, password_hash=PASSWORD_HASH)


@pytest.fixture()
def admin() -> Principal:
    return Principal(username="root", role=Role.ADMIN, password_hash=PASSWORD_HASH)


@pytest.fixture()
def directory(alice: Principal, admin: Principal) -> InMemoryPrincipalDirectory:
    return InMemoryPrincipalDirectory([alice, admin])


@pytest.fixture()
def refresh_store() -> InMemoryRefreshStore:
    return InMemoryRefreshStore()


@pytest.fixture()
def verifier(signer: Signer, directory: InMemoryPrincipalDirectory) -> TokenVerifier:
    return TokenVerifier(signer, directory)


@pytest.fixture()
def service(
    issuer: TokenIssuer,
    verifier: TokenVerifier,
    directory: InMemoryPrincipalDirectory,
    refresh_store: InMemoryRefreshStore,
) -> AuthSessionService:
    """
    Build an AuthSessionService wired to in-memory doubles.

    .. note::
       Uses the real werkzeug hasher; ``PASSWORD`` is the valid password for
       every principal in :func:`directory`.
    """
    return AuthSessionService(
        issuer=issuer,
        verifier=verifier,
        directory=directory,
        hasher=WerkzeugPasswordHasher(),
        refresh_store=refresh_store,
    )


@pytest.fixture()
def bearer() -> Callable[[str], dict[str, Any]]:
    def _headers(access_token: str, refresh_token: str | None = None) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        if refresh_token is not None:
            headers["Refresh-Token"] = refresh_token
        return headers

    return _headers
