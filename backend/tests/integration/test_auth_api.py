"""Integration tests for the authentication endpoints and the request gate."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from library_auth.core.config import TestingConfig
from library_auth.core.extensions import REDIS_EXTENSION_KEY, db, get_redis
from library_auth.factory import create_app
from library_auth.infra.jwt.signer import TokenPurpose
from library_auth.services.auth.dto import Role
from library_auth.services.auth.issuer import TokenIssuer
from tests.factories.member import DEFAULT_PASSWORD, MemberFactory

LOGIN = "/api/v1/auth/login"
LOGOUT = "/api/v1/auth/logout"
WHOAMI = "/api/v1/auth/whoami"
ADMIN_PING = "/api/v1/admin/ping"


@pytest.fixture()
def alice(session):
    return MemberFactory(username="alice")


def _login(client, username: str = "alice", password: str = DEFAULT_PASSWORD):
    return client.post(LOGIN, json={"username": username, "password": password})


def _expired_access(auth_service, username: str) -> str:
    past = datetime.now(UTC) - timedelta(hours=2)
    issuer = TokenIssuer(auth_service.issuer.signer, auth_service.issuer.config, now=lambda: past)
    return issuer.issue(username, TokenPurpose.ACCESS)


# ------------------------------- Login ------------------------------------ #
def test_login_returns_token_pair(client, alice):
    resp = _login(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]


def test_login_then_whoami(client, alice, bearer):
    """Scenario A over HTTP."""
    tokens = _login(client).get_json()

    resp = client.get(WHOAMI, headers=bearer(tokens["access_token"]))

    assert resp.status_code == 200
    assert resp.get_json() == {"username": "alice", "role": "USER"}


@pytest.mark.parametrize("username, password", [("alice", "wrong-password"), ("nobody", DEFAULT_PASSWORD)])
def test_login_failure_is_generic_401(client, alice, username, password):
    resp = _login(client, username, password)

    assert resp.status_code == 401
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["error"] == "Invalid username or password"
    assert body["code"] == "invalid_credentials"
    assert "request_id" in body


def test_login_validates_payload(client):
    resp = client.post(LOGIN, json={"username": "alice"})

    assert resp.status_code == 422
    assert "password" in resp.get_json()["details"]["errors"]


def test_login_ignores_stale_authorization_header(client, alice, bearer):
    resp = client.post(
        LOGIN,
        json={"username": "alice", "password": DEFAULT_PASSWORD},
        headers=bearer("garbage"),
    )

    assert resp.status_code == 200


def test_login_store_outage_is_generic_401(client, alice, auth_service, monkeypatch):
    def _down(*_args, **_kwargs):
        raise ConnectionError("refresh store unavailable")

    monkeypatch.setattr(auth_service.refresh_store, "put", _down)

    resp = _login(client)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_credentials"


# --------------------------- Request gate --------------------------------- #
def test_whoami_requires_authentication(client):
    resp = client.get(WHOAMI)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "unauthorized"


def test_invalid_access_token_is_rejected(client, alice, bearer):
    resp = client.get(WHOAMI, headers=bearer("not-a-token"))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"
    assert resp.headers["WWW-Authenticate"].startswith("Bearer")
    assert resp.mimetype == "application/problem+json"


def test_expired_access_token_without_refresh(client, alice, auth_service, bearer):
    resp = client.get(WHOAMI, headers=bearer(_expired_access(auth_service, "alice")))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "token_expired"


def test_expired_access_token_is_refreshed_transparently(client, alice, auth_service, bearer):
    """Scenario E over HTTP: the new pair comes back in response headers."""
    tokens = _login(client).get_json()
    expired = _expired_access(auth_service, "alice")

    resp = client.get(WHOAMI, headers=bearer(expired, tokens["refresh_token"]))

    assert resp.status_code == 200
    assert resp.get_json()["username"] == "alice"
    new_access = resp.headers["New-Access-Token"]
    new_refresh = resp.headers["New-Refresh-Token"]
    assert new_refresh != tokens["refresh_token"]

    follow_up = client.get(WHOAMI, headers=bearer(new_access))
    assert follow_up.status_code == 200
    assert "New-Access-Token" not in follow_up.headers


def test_replayed_refresh_token_kills_the_session(client, alice, auth_service, bearer):
    tokens = _login(client).get_json()
    expired = _expired_access(auth_service, "alice")
    first = client.get(WHOAMI, headers=bearer(expired, tokens["refresh_token"]))
    assert first.status_code == 200

    replay = client.get(WHOAMI, headers=bearer(expired, tokens["refresh_token"]))
    assert replay.status_code == 401
    assert replay.get_json()["code"] == "session_invalid"

    # the legitimate holder of the newest token is logged out as well
    newest = client.get(WHOAMI, headers=bearer(expired, first.headers["New-Refresh-Token"]))
    assert newest.status_code == 401
    assert newest.get_json()["code"] == "session_invalid"


def test_deleted_member_token_stops_working(client, alice, session, bearer):
    tokens = _login(client).get_json()
    session.delete(alice)
    session.commit()

    resp = client.get(WHOAMI, headers=bearer(tokens["access_token"]))

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_admin_route_requires_admin_role(client, alice, session, bearer):
    MemberFactory(username="root", role=Role.ADMIN)
    user_tokens = _login(client, "alice").get_json()
    admin_tokens = _login(client, "root").get_json()

    forbidden = client.get(ADMIN_PING, headers=bearer(user_tokens["access_token"]))
    allowed = client.get(ADMIN_PING, headers=bearer(admin_tokens["access_token"]))

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.get_json()["username"] == "root"


def test_gate_only_applies_under_protected_prefix(client):
    resp = client.get("/not-api", headers={"Authorization": "Bearer garbage"})

    assert resp.status_code == 404


# ------------------------------- Logout ----------------------------------- #
def test_logout_then_refresh_fails(client, alice, auth_service, bearer):
    """Scenario D over HTTP."""
    tokens = _login(client).get_json()

    resp = client.post(LOGOUT, headers={"Refresh-Token": tokens["refresh_token"]})
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Successfully logged out"}

    expired = _expired_access(auth_service, "alice")
    again = client.get(WHOAMI, headers=bearer(expired, tokens["refresh_token"]))
    assert again.status_code == 401
    assert again.get_json()["code"] == "session_invalid"


@pytest.mark.parametrize("headers", [{}, {"Refresh-Token": "garbage"}])
def test_logout_always_succeeds(client, headers):
    resp = client.post(LOGOUT, headers=headers)

    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Successfully logged out"


# ------------------------------- Misc ------------------------------------- #
def test_health(client):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["db"] == "ok"


def test_health_reports_redis_when_it_backs_sessions(app, client):
    app.extensions[REDIS_EXTENSION_KEY] = fakeredis.FakeRedis()

    resp = client.get("/api/v1/health")

    assert resp.get_json()["redis"] == "ok"


def test_health_omits_redis_when_unused(client):
    assert "redis" not in client.get("/api/v1/health").get_json()


def test_get_redis_requires_configuration(app):
    with pytest.raises(RuntimeError):
        get_redis(app)


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})

    assert resp.headers["X-Request-ID"] == "abc-123"


def test_cors_exposes_rotated_token_headers():
    class CorsConfig(TestingConfig):
        CORS_ORIGINS = "http://library.example"

    cors_app = create_app(CorsConfig)
    with cors_app.app_context():
        db.create_all()
        resp = cors_app.test_client().get(
            "/api/v1/health", headers={"Origin": "http://library.example"}
        )

    exposed = resp.headers.get("Access-Control-Expose-Headers", "")
    assert "New-Access-Token" in exposed
    assert "New-Refresh-Token" in exposed


def test_login_is_rate_limited():
    class LimitedConfig(TestingConfig):
        RATELIMIT_ENABLED = True
        AUTH_LOGIN_RATE_LIMIT = "2 per minute"

    limited = create_app(LimitedConfig)
    with limited.app_context():
        db.create_all()
        client = limited.test_client()
        codes = [
            client.post(LOGIN, json={"username": "x", "password": "y"}).status_code
            for _ in range(3)
        ]
        db.drop_all()

    assert codes == [401, 401, 429]
