# library_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

# ------------------------------ Identity ---------------------------------- #


class Role(str, Enum):
    """Authority level of a library member."""

    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Member as resolved from the member directory.

    :param username: Unique, immutable login name (token subject).
    :type username: str
    :param role: Member role.
    :type role: Role
    :param password_hash: Opaque hash, only ever handed to the password hasher.
    :type password_hash: str
    """

    username: str
    role: Role
    password_hash: str

    def identity(self) -> AuthenticatedIdentity:
        """Strip the credential material for request-scoped use."""
        return AuthenticatedIdentity(username=self.username, role=self.role)


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """
    Identity attached to a request once its access token checks out.

    :param username: Token subject.
    :param role: Role read from the member directory at verification time.
    """

    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Member username.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token rotation.

    :param refresh_token: Encoded refresh JWT as presented by the client.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Encoded refresh JWT, or ``None`` when the header is absent.
    :type refresh_token: str | None
    """

    refresh_token: str | None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param issuer: Value of the ``iss`` claim.
    :type issuer: str
    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    issuer: str
    access_expires: timedelta
    refresh_expires: timedelta
