"""Per-request token gate.

The gate turns the ``Authorization`` / ``Refresh-Token`` headers of a request
into a :class:`GateDecision`. The decision is stored on ``flask.g`` for the
duration of the request and handed to views explicitly by the decorators in
:mod:`library_auth.api.deps`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, Response, g, has_request_context, request

from library_auth.core.errors import Unauthorized
from library_auth.services.auth.dto import AuthenticatedIdentity, RefreshIn, TokenPair
from library_auth.services.auth.results import AuthErrorKind
from library_auth.services.auth.service import AuthSessionService
from library_auth.services.auth.verifier import TokenVerifier

log = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "
REFRESH_TOKEN_HEADER = "Refresh-Token"
NEW_ACCESS_TOKEN_HEADER = "New-Access-Token"
NEW_REFRESH_TOKEN_HEADER = "New-Refresh-Token"

# Client-visible rejection codes. The fine-grained kind is only logged.
_CLIENT_CODES: dict[AuthErrorKind, tuple[str, str]] = {
    AuthErrorKind.TOKEN_EXPIRED: ("token_expired", "Access token expired"),
    AuthErrorKind.TOKEN_MALFORMED: ("invalid_token", "Invalid access token"),
    AuthErrorKind.SIGNATURE_INVALID: ("invalid_token", "Invalid access token"),
    AuthErrorKind.UNKNOWN_PRINCIPAL: ("invalid_token", "Invalid access token"),
}
_SESSION_INVALID = ("session_invalid", "Session is no longer valid, please sign in again")

# Credential endpoints must work whatever stale headers the client still sends.
DEFAULT_EXEMPT_ENDPOINTS = frozenset({"auth.login", "auth.logout", "health.healthcheck"})


@dataclass(frozen=True, slots=True)
class GateDecision:
    """
    What the gate concluded about one request.

    Exactly one of these shapes holds:

    - anonymous: every field ``None``;
    - authenticated: ``identity`` set;
    - rotated: ``identity`` and ``rotated`` (the new pair) set;
    - rejected: ``rejection`` (and the client-facing ``code``/``message``) set.
    """

    identity: AuthenticatedIdentity | None = None
    rotated: TokenPair | None = None
    rejection: AuthErrorKind | None = None
    code: str | None = None
    message: str | None = None

    @property
    def rejected(self) -> bool:
        return self.rejection is not None

    @classmethod
    def reject(cls, kind: AuthErrorKind, *, after_rotation: bool = False) -> GateDecision:
        if after_rotation:
            code, message = _SESSION_INVALID
        else:
            code, message = _CLIENT_CODES.get(kind, _SESSION_INVALID)
        return cls(rejection=kind, code=code, message=message)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


class RequestAuthMiddleware:
    """
    Authenticate requests under a path prefix, refreshing transparently.

    :param verifier: Access token verification.
    :param sessions: Session service used for the one transparent rotation.
    :param protected_prefix: Path prefix the gate applies to.
    :param exempt_endpoints: Flask endpoint names never gated.
    """

    def __init__(
        self,
        *,
        verifier: TokenVerifier,
        sessions: AuthSessionService,
        protected_prefix: str = "/api",
        exempt_endpoints: frozenset[str] = DEFAULT_EXEMPT_ENDPOINTS,
    ) -> None:
        self.verifier = verifier
        self.sessions = sessions
        self.protected_prefix = protected_prefix
        self.exempt_endpoints = exempt_endpoints

    def protects(self, path: str) -> bool:
        prefix = self.protected_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")

    def authenticate(self, authorization: str | None, refresh_token: str | None) -> GateDecision:
        """
        Decide the fate of a request from its two credential headers.

        No bearer token means anonymous; views decide whether that is enough.
        An expired access token plus a refresh token triggers exactly one
        rotation attempt. Any other failure is rejected without one.
        """
        access_token = _bearer_token(authorization)
        if access_token is None:
            return GateDecision()

        verified = self.verifier.verify_access(access_token)
        if verified.ok and verified.value is not None:
            return GateDecision(identity=verified.value.identity())

        kind = verified.error or AuthErrorKind.TOKEN_MALFORMED
        if kind is not AuthErrorKind.TOKEN_EXPIRED or not refresh_token:
            self._log_rejection(kind)
            return GateDecision.reject(kind)

        try:
            rotated = self.sessions.rotate(RefreshIn(refresh_token=refresh_token))
        except Exception:
            log.exception("transparent refresh failed", extra={"event": "auth.gate.rotation_error"})
            return GateDecision.reject(AuthErrorKind.REFRESH_REVOKED, after_rotation=True)

        if not rotated.ok or rotated.value is None:
            rotated_kind = rotated.error or AuthErrorKind.REFRESH_MALFORMED
            self._log_rejection(rotated_kind)
            return GateDecision.reject(rotated_kind, after_rotation=True)

        pair = rotated.value
        fresh = self.verifier.verify_access(pair.access_token)
        if not fresh.ok or fresh.value is None:
            fresh_kind = fresh.error or AuthErrorKind.TOKEN_MALFORMED
            self._log_rejection(fresh_kind)
            return GateDecision.reject(fresh_kind, after_rotation=True)
        return GateDecision(identity=fresh.value.identity(), rotated=pair)

    @staticmethod
    def _log_rejection(kind: AuthErrorKind) -> None:
        log.info(
            "request rejected by auth gate",
            extra={
                "event": "auth.gate.rejected",
                "error_kind": kind.value,
                "endpoint": request.path if has_request_context() else None,
            },
        )

    # ------------------------------ Flask glue ------------------------------

    def init_app(self, app: Flask) -> None:
        """Install the gate as ``before_request`` / ``after_request`` hooks."""

        @app.before_request
        def _authenticate_request():
            g.auth_decision = GateDecision()
            if request.method == "OPTIONS" or not self.protects(request.path):
                return None
            if request.endpoint in self.exempt_endpoints:
                return None
            decision = self.authenticate(
                request.headers.get(AUTHORIZATION_HEADER),
                request.headers.get(REFRESH_TOKEN_HEADER),
            )
            g.auth_decision = decision
            if decision.rejected:
                error = Unauthorized(decision.message or "Unauthorized", code=decision.code or "unauthorized")
                return error.to_response()
            return None

        @app.after_request
        def _emit_rotated_tokens(response: Response) -> Response:
            decision: GateDecision | None = g.get("auth_decision")
            if decision is not None and decision.rotated is not None:
                response.headers[NEW_ACCESS_TOKEN_HEADER] = decision.rotated.access_token
                response.headers[NEW_REFRESH_TOKEN_HEADER] = decision.rotated.refresh_token
            return response


def current_decision() -> GateDecision:
    """Return the gate decision of the current request (anonymous if none)."""
    decision = g.get("auth_decision")
    return decision if isinstance(decision, GateDecision) else GateDecision()
