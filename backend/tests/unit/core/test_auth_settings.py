# tests/unit/core/test_auth_settings.py
"""Startup validation of the auth configuration."""

from __future__ import annotations

from datetime import timedelta

import pytest

from library_auth.core.auth import AuthSettings
from library_auth.core.config import TestingConfig
from library_auth.factory import create_app
from library_auth.services._shared.errors import ConfigurationError

VALID = {
    "JWT_ISSUER": "library",
    "JWT_ACCESS_SECRET": TestingConfig.JWT_ACCESS_SECRET,
    "JWT_REFRESH_SECRET": TestingConfig.JWT_REFRESH_SECRET,
    "JWT_ACCESS_DURATION_MINUTES": "15",
    "JWT_REFRESH_DURATION_MINUTES": "1440",
}


def test_from_config_parses_durations_and_defaults():
    settings = AuthSettings.from_config(VALID)

    assert settings.issuer == "library"
    assert settings.access_duration == timedelta(minutes=15)
    assert settings.refresh_duration == timedelta(days=1)
    assert settings.store_backend == "database"
    assert settings.protected_prefix == "/api"


@pytest.mark.parametrize("missing", sorted(VALID))
def test_every_jwt_key_is_required(missing):
    config = {k: v for k, v in VALID.items() if k != missing}

    with pytest.raises(ConfigurationError, match=missing):
        AuthSettings.from_config(config)


@pytest.mark.parametrize(
    "overrides",
    [
        {"JWT_ACCESS_DURATION_MINUTES": "fifteen"},
        {"JWT_ACCESS_DURATION_MINUTES": "0"},
        {"JWT_REFRESH_DURATION_MINUTES": "-5"},
        {"JWT_REFRESH_DURATION_MINUTES": "15"},
        {"REFRESH_STORE_BACKEND": "memcached"},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        AuthSettings.from_config({**VALID, **overrides})


def test_create_app_refuses_to_start_without_secrets():
    class MissingSecret(TestingConfig):
        JWT_REFRESH_SECRET = None

    with pytest.raises(ConfigurationError):
        create_app(MissingSecret)


def test_create_app_refuses_weak_secret():
    class WeakSecret(TestingConfig):
        JWT_ACCESS_SECRET = "c2hvcnQ"  # "short"

    with pytest.raises(ConfigurationError):
        create_app(WeakSecret)


def test_memory_backend_is_selectable():
    from library_auth.services._shared.ports import InMemoryRefreshStore

    class MemoryBackend(TestingConfig):
        REFRESH_STORE_BACKEND = "memory"

    app = create_app(MemoryBackend)

    assert isinstance(app.extensions["auth_session_service"].refresh_store, InMemoryRefreshStore)
