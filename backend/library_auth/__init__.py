"""Session authentication service for the library backend."""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
