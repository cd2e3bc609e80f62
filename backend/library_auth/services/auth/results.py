"""Explicit outcome values returned by verification and session operations.

Auth failures are expected, terminal results of a single request, so they are
returned as data and callers branch on :class:`AuthErrorKind`. Infrastructure
failures (database, Redis) are *not* represented here: they raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class AuthErrorKind(str, Enum):
    """Every way a credential can be rejected."""

    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_MALFORMED = "token_malformed"
    SIGNATURE_INVALID = "signature_invalid"
    TOKEN_EXPIRED = "token_expired"
    REFRESH_EXPIRED = "refresh_expired"
    REFRESH_MALFORMED = "refresh_malformed"
    REFRESH_REVOKED = "refresh_revoked"
    REFRESH_REUSE_DETECTED = "refresh_reuse_detected"
    UNKNOWN_PRINCIPAL = "unknown_principal"


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """
    Either a value or an :class:`AuthErrorKind`.

    :ivar value: Result payload. A few failures still carry a value, e.g. the
        authenticated subject of an expired refresh token.
    :ivar error: Failure kind, ``None`` on success.
    """

    value: T | None = None
    error: AuthErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: AuthErrorKind, value: T | None = None) -> Outcome[T]:
        return cls(value=value, error=error)
