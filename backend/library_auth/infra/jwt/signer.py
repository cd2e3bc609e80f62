# library_auth/infra/jwt/signer.py
"""HS256 signing primitive with one independent key per token purpose."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import jwt

from library_auth.services._shared.errors import ConfigurationError
from library_auth.services.auth.results import AuthErrorKind

ALGORITHM = "HS256"
MIN_KEY_BYTES = 32
REQUIRED_CLAIMS = ["exp", "sub", "iss"]


class TokenPurpose(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


def decode_base64url(value: str, *, name: str) -> bytes:
    """
    Decode an unpadded (or padded) base64url secret.

    :param value: Encoded secret as found in configuration.
    :param name: Configuration key, used in error messages only.
    :raises ConfigurationError: If the value is empty, not base64url or too short.
    """
    raw = (value or "").strip()
    if not raw:
        raise ConfigurationError(f"{name} is required")
    padded = raw + "=" * (-len(raw) % 4)
    try:
        key = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(f"{name} is not valid base64url") from exc
    if len(key) < MIN_KEY_BYTES:
        raise ConfigurationError(f"{name} must decode to at least {MIN_KEY_BYTES * 8} bits")
    return key


@dataclass(frozen=True, slots=True)
class SigningKeys:
    """Raw HMAC keys, decoded once at startup."""

    access: bytes
    refresh: bytes

    @classmethod
    def from_base64url(cls, access_secret: str, refresh_secret: str) -> SigningKeys:
        access = decode_base64url(access_secret, name="JWT_ACCESS_SECRET")
        refresh = decode_base64url(refresh_secret, name="JWT_REFRESH_SECRET")
        if access == refresh:
            raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return cls(access=access, refresh=refresh)

    def for_purpose(self, purpose: TokenPurpose) -> bytes:
        return self.access if purpose is TokenPurpose.ACCESS else self.refresh


@dataclass(frozen=True, slots=True)
class Verification:
    """
    Result of :meth:`Signer.verify`.

    ``claims`` is populated on success and also for ``TOKEN_EXPIRED``, since an
    expired token whose signature checks out still names a trustworthy subject.
    """

    claims: dict[str, Any] | None = None
    error: AuthErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def subject(self) -> str | None:
        if self.claims is None:
            return None
        sub = self.claims.get("sub")
        return sub if isinstance(sub, str) else None


class Signer:
    """
    Stateless signer/verifier. Safe to share across threads.

    :param keys: Decoded access and refresh keys.
    :param issuer: Value written into and required from the ``iss`` claim.
    """

    def __init__(self, keys: SigningKeys, *, issuer: str) -> None:
        self._keys = keys
        self.issuer = issuer

    def sign(self, claims: Mapping[str, Any], purpose: TokenPurpose) -> str:
        return jwt.encode(dict(claims), self._keys.for_purpose(purpose), algorithm=ALGORITHM)

    def verify(self, token: str, purpose: TokenPurpose) -> Verification:
        key = self._keys.for_purpose(purpose)
        try:
            claims = self._decode(token, key, verify_exp=True)
        except jwt.ExpiredSignatureError:
            # signature already verified; decode again only to recover the subject
            try:
                claims = self._decode(token, key, verify_exp=False)
            except jwt.InvalidTokenError as exc:
                return Verification(error=self._classify(exc))
            return Verification(claims=claims, error=AuthErrorKind.TOKEN_EXPIRED)
        except jwt.InvalidTokenError as exc:
            return Verification(error=self._classify(exc))
        return Verification(claims=claims)

    def _decode(self, token: str, key: bytes, *, verify_exp: bool) -> dict[str, Any]:
        return jwt.decode(
            token,
            key,
            algorithms=[ALGORITHM],
            issuer=self.issuer,
            options={"require": REQUIRED_CLAIMS, "verify_exp": verify_exp},
        )

    @staticmethod
    def _classify(exc: jwt.InvalidTokenError) -> AuthErrorKind:
        if isinstance(exc, jwt.InvalidSignatureError | jwt.InvalidIssuerError):
            return AuthErrorKind.SIGNATURE_INVALID
        return AuthErrorKind.TOKEN_MALFORMED
