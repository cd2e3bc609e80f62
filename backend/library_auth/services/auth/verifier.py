# library_auth/services/auth/verifier.py
from __future__ import annotations

from library_auth.infra.jwt.signer import Signer, TokenPurpose
from library_auth.services._shared.ports import PrincipalDirectory
from library_auth.services.auth.dto import Principal
from library_auth.services.auth.results import AuthErrorKind, Outcome


class TokenVerifier:
    """
    Validate presented tokens and resolve their subject.

    :param signer: Signing primitive.
    :param directory: Member lookup; consulted for every access token.
    """

    def __init__(self, signer: Signer, directory: PrincipalDirectory) -> None:
        self.signer = signer
        self.directory = directory

    def verify_access(self, token: str) -> Outcome[Principal]:
        """
        Verify an access token and resolve the live member behind it.

        :returns: The principal, or one of ``TOKEN_MALFORMED``,
            ``SIGNATURE_INVALID``, ``TOKEN_EXPIRED``, ``UNKNOWN_PRINCIPAL``.
        """
        result = self.signer.verify(token, TokenPurpose.ACCESS)
        if result.error is not None:
            return Outcome.failure(result.error)
        subject = result.subject
        if subject is None:
            return Outcome.failure(AuthErrorKind.TOKEN_MALFORMED)
        principal = self.directory.find_by_username(subject)
        if principal is None:
            return Outcome.failure(AuthErrorKind.UNKNOWN_PRINCIPAL)
        return Outcome.success(principal)

    def verify_refresh(self, token: str) -> Outcome[str]:
        """
        Verify a refresh token's signature and expiry, without a member lookup.

        :returns: The subject, or ``REFRESH_EXPIRED`` (value still carries the
            subject) or ``REFRESH_MALFORMED``.
        """
        result = self.signer.verify(token, TokenPurpose.REFRESH)
        if result.error is AuthErrorKind.TOKEN_EXPIRED:
            return Outcome.failure(AuthErrorKind.REFRESH_EXPIRED, value=result.subject)
        if result.error is not None or result.subject is None:
            return Outcome.failure(AuthErrorKind.REFRESH_MALFORMED)
        return Outcome.success(result.subject)
