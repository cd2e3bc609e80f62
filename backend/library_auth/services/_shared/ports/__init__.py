"""
library_auth.services._shared.ports
===================================

*Ports* (hexagonal interfaces) the auth protocol depends on.

Modules
-------
- :mod:`principal_directory`:
    :class:`~.PrincipalDirectory`: read access to members by username.

- :mod:`password_hasher`:
    :class:`~.PasswordHasher`: verification of a raw password against a hash.

- :mod:`refresh_store`:
    :class:`~.RefreshStore`, :class:`~.RotationResult` and
    :class:`~.RefreshSessionView`: one refresh record per principal with
    atomic compare-and-swap rotation.

Concrete adapters (database, Redis, werkzeug) live under ``library_auth.infra``.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .principal_directory import InMemoryPrincipalDirectory, PrincipalDirectory
from .refresh_store import (
    InMemoryRefreshStore,
    RefreshSessionView,
    RefreshStore,
    RotationResult,
    tokens_match,
)

__all__ = [
    "PasswordHasher",
    "PrincipalDirectory",
    "InMemoryPrincipalDirectory",
    "RefreshStore",
    "RefreshSessionView",
    "RotationResult",
    "InMemoryRefreshStore",
    "tokens_match",
]
