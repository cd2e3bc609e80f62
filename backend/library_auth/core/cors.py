"""CORS configuration helper for API resources."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from library_auth.api.middleware import (
    NEW_ACCESS_TOKEN_HEADER,
    NEW_REFRESH_TOKEN_HEADER,
    REFRESH_TOKEN_HEADER,
)


def init_app(app: Flask) -> None:
    """Configure CORS for API endpoints based on application config.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted. When ``CORS_ORIGINS`` is blank or ``"*"`` the policy allows
        any origin but disables credential support.

    Notes
    -----
    Rotated credentials travel in response headers, so those headers are
    exposed to browser scripts and ``Refresh-Token`` is allowed on requests.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        allow_headers=["Authorization", "Content-Type", REFRESH_TOKEN_HEADER, "X-Request-ID"],
        expose_headers=[NEW_ACCESS_TOKEN_HEADER, NEW_REFRESH_TOKEN_HEADER, "X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
