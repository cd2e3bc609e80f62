# library_auth/services/auth/service.py
from __future__ import annotations

import logging

from library_auth.services._shared.ports import (
    PasswordHasher,
    PrincipalDirectory,
    RefreshStore,
    RotationResult,
)
from library_auth.services.auth.dto import LoginIn, LogoutIn, RefreshIn, TokenPair
from library_auth.services.auth.issuer import TokenIssuer
from library_auth.services.auth.results import AuthErrorKind, Outcome
from library_auth.services.auth.verifier import TokenVerifier

log = logging.getLogger(__name__)


class AuthSessionService:
    """
    Session lifecycle: login, refresh-token rotation and logout.

    Per principal the session is one of *NoSession*, *Active* (a refresh
    record exists) or *Revoked* (record deleted); a successful login always
    leads back to *Active*.

    Security
    --------
    - One refresh record per principal. Login overwrites it, so any token
      handed out earlier stops working (single session per user).
    - Rotation is a compare-and-swap in the store. A presented token that is
      authentic but no longer the stored one is treated as replay: the record
      is deleted and the member has to sign in again.
    - Auth failures are returned as :class:`Outcome`. Store or directory
      errors are raised unchanged.
    """

    def __init__(
        self,
        *,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        directory: PrincipalDirectory,
        hasher: PasswordHasher,
        refresh_store: RefreshStore,
    ) -> None:
        self.issuer = issuer
        self.verifier = verifier
        self.directory = directory
        self.hasher = hasher
        self.refresh_store = refresh_store

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Outcome[TokenPair]:
        """
        Check credentials and start a fresh session.

        :param dto: Username and raw password.
        :returns: New token pair, or ``INVALID_CREDENTIALS`` for an unknown
            username and a wrong password alike.
        """
        principal = self.directory.find_by_username(dto.username)
        password_hash = principal.password_hash if principal is not None else None
        if not self.hasher.verify(dto.password, password_hash) or principal is None:
            log.info(
                "login rejected",
                extra={
                    "event": "auth.login.rejected",
                    "principal": dto.username,
                    "error_kind": AuthErrorKind.INVALID_CREDENTIALS.value,
                    "reason": "unknown_user" if principal is None else "bad_password",
                },
            )
            return Outcome.failure(AuthErrorKind.INVALID_CREDENTIALS)

        pair = self.issuer.issue_pair(principal.username)
        self.refresh_store.put(principal.username, pair.refresh_token)
        log.info("login succeeded", extra={"event": "auth.login.ok", "principal": principal.username})
        return Outcome.success(pair)

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, dto: RefreshIn) -> Outcome[TokenPair]:
        """
        Exchange the current refresh token for a new pair.

        Failure kinds: ``REFRESH_MALFORMED``, ``REFRESH_EXPIRED``,
        ``UNKNOWN_PRINCIPAL``, ``REFRESH_REVOKED`` and ``REFRESH_REUSE_DETECTED``.
        Only the last one is a security event; it deletes the record.
        """
        presented = dto.refresh_token
        checked = self.verifier.verify_refresh(presented)

        if checked.error is AuthErrorKind.REFRESH_EXPIRED:
            if checked.value is not None:
                self.refresh_store.discard(checked.value, presented)
            return self._reject(checked.error, checked.value)
        if checked.error is not None or checked.value is None:
            return self._reject(AuthErrorKind.REFRESH_MALFORMED, None)

        subject = checked.value
        principal = self.directory.find_by_username(subject)
        if principal is None:
            self.refresh_store.delete(subject)
            return self._reject(AuthErrorKind.UNKNOWN_PRINCIPAL, subject)

        pair = self.issuer.issue_pair(principal.username)
        result = self.refresh_store.rotate(
            principal=principal.username,
            presented=presented,
            replacement=pair.refresh_token,
        )

        if result is RotationResult.NOT_FOUND:
            return self._reject(AuthErrorKind.REFRESH_REVOKED, subject)
        if result is RotationResult.REUSED:
            log.warning(
                "refresh token reuse detected; session revoked",
                extra={
                    "event": "auth.refresh.reuse_detected",
                    "principal": subject,
                    "error_kind": AuthErrorKind.REFRESH_REUSE_DETECTED.value,
                },
            )
            return Outcome.failure(AuthErrorKind.REFRESH_REUSE_DETECTED)

        log.info("refresh token rotated", extra={"event": "auth.refresh.ok", "principal": subject})
        return Outcome.success(pair)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        End the session named by the refresh token, if it can be identified.

        Never reports failure: an absent or unreadable token leaves the store
        untouched. An expired token only removes the record if it is still the
        stored one.
        """
        if not dto.refresh_token:
            log.info("logout without token", extra={"event": "auth.logout.noop"})
            return

        checked = self.verifier.verify_refresh(dto.refresh_token)
        if checked.ok and checked.value is not None:
            removed = self.refresh_store.delete(checked.value)
        elif checked.error is AuthErrorKind.REFRESH_EXPIRED and checked.value is not None:
            removed = self.refresh_store.discard(checked.value, dto.refresh_token)
        else:
            log.info(
                "logout with unreadable token",
                extra={"event": "auth.logout.noop", "error_kind": checked.error.value if checked.error else None},
            )
            return

        log.info(
            "logout",
            extra={"event": "auth.logout.ok", "principal": checked.value, "removed": removed},
        )

    # ------------------------------------------------------------------ #

    @staticmethod
    def _reject(kind: AuthErrorKind, principal: str | None) -> Outcome[TokenPair]:
        log.info(
            "refresh rejected",
            extra={"event": "auth.refresh.rejected", "principal": principal, "error_kind": kind.value},
        )
        return Outcome.failure(kind)
