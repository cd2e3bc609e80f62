from __future__ import annotations

import hmac
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol


class RotationResult(Enum):
    """Outcome of an atomic compare-and-swap on a principal's refresh record."""

    OK = auto()
    NOT_FOUND = auto()
    REUSED = auto()


@dataclass(frozen=True)
class RefreshSessionView:
    """
    Read-model for the refresh record of one principal.

    :ivar principal: Principal key (the username).
    :ivar token: The only refresh token value currently accepted.
    """

    principal: str
    token: str


class RefreshStore(Protocol):
    """
    Keyed store holding **at most one** refresh token per principal.

    ``rotate`` and ``discard`` MUST be atomic per principal key: two
    concurrent rotations presenting the same token can never both return
    ``RotationResult.OK``.
    """

    def get(self, principal: str) -> RefreshSessionView | None:
        """Fetch the current record (if present)."""

    def put(self, principal: str, token: str) -> None:
        """Create or overwrite the record (login)."""

    def delete(self, principal: str) -> bool:
        """Remove the record. :returns: True if it existed."""

    def rotate(self, *, principal: str, presented: str, replacement: str) -> RotationResult:
        """
        Atomically replace ``presented`` with ``replacement``.

        - ``OK``: stored value equalled ``presented`` and now equals ``replacement``.
        - ``NOT_FOUND``: no record on file; nothing changed.
        - ``REUSED``: stored value differed; the record has been deleted.
        """

    def discard(self, principal: str, token: str) -> bool:
        """Delete the record only if it still holds ``token``. :returns: True if deleted."""


def tokens_match(stored: str | bytes, presented: str) -> bool:
    """Byte-for-byte, constant-time comparison of two token values."""
    stored_b = stored if isinstance(stored, bytes) else stored.encode()
    return hmac.compare_digest(stored_b, presented.encode())


class InMemoryRefreshStore(RefreshStore):
    """
    In-memory refresh store with atomic rotation behavior.

    .. note::
       A single lock guards every read-compare-write sequence.
    """

    def __init__(self) -> None:
        self._by_principal: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, principal: str) -> RefreshSessionView | None:
        with self._lock:
            token = self._by_principal.get(principal)
        if token is None:
            return None
        return RefreshSessionView(principal=principal, token=token)

    def put(self, principal: str, token: str) -> None:
        with self._lock:
            self._by_principal[principal] = token

    def delete(self, principal: str) -> bool:
        with self._lock:
            return self._by_principal.pop(principal, None) is not None

    def rotate(self, *, principal: str, presented: str, replacement: str) -> RotationResult:
        with self._lock:
            stored = self._by_principal.get(principal)
            if stored is None:
                return RotationResult.NOT_FOUND
            if not tokens_match(stored, presented):
                del self._by_principal[principal]
                return RotationResult.REUSED
            self._by_principal[principal] = replacement
            return RotationResult.OK

    def discard(self, principal: str, token: str) -> bool:
        with self._lock:
            stored = self._by_principal.get(principal)
            if stored is None or not tokens_match(stored, token):
                return False
            del self._by_principal[principal]
            return True
