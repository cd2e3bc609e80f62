"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust one hop of ``X-Forwarded-*`` headers when ``USE_PROXYFIX`` is set.

    The login rate limit keys on the client address, which is the proxy's
    address unless :class:`~werkzeug.middleware.proxy_fix.ProxyFix` rewrites it.
    Only enable this behind a proxy that overwrites these headers.
    """
    if app.config.get("USE_PROXYFIX", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[method-assign]
