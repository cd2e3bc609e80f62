# library_auth/services/auth/issuer.py
from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from library_auth.infra.jwt.signer import Signer, TokenPurpose
from library_auth.services.auth.dto import AuthTokenConfig, TokenPair


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuer:
    """
    Mint access and refresh tokens for a subject.

    Claims: ``iss`` (configured issuer), ``sub`` (username), ``iat``, ``exp``
    and a random ``jti``. No role or authority snapshot is embedded; the
    verifier resolves the member on every request.

    :param signer: Signing primitive holding both keys.
    :param config: Issuer name and lifetimes.
    :param now: Clock used for ``iat``/``exp`` (injectable for tests).
    """

    def __init__(
        self,
        signer: Signer,
        config: AuthTokenConfig,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.signer = signer
        self.config = config
        self._now = now or _utcnow

    def duration(self, purpose: TokenPurpose) -> timedelta:
        if purpose is TokenPurpose.ACCESS:
            return self.config.access_expires
        return self.config.refresh_expires

    def issue(self, subject: str, purpose: TokenPurpose) -> str:
        issued_at = self._now()
        claims = {
            "iss": self.config.issuer,
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.duration(purpose),
            "jti": uuid4().hex,
        }
        return self.signer.sign(claims, purpose)

    def issue_pair(self, subject: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue(subject, TokenPurpose.ACCESS),
            refresh_token=self.issue(subject, TokenPurpose.REFRESH),
        )
