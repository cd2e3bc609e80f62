"""Member model: the library account a token subject resolves to."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates
from werkzeug.security import generate_password_hash

from library_auth.core.extensions import db
from library_auth.services.auth.dto import Role

from .base import PKMixin, ReprMixin, TimestampMixin


class Member(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Library account as seen by the auth subsystem.

    Only ``username``, ``password_hash`` and ``role`` are read during
    authentication. Contact details and loans live with the rest of the
    member management code.

    Fields
    ------
    username : str
        Unique login name; used verbatim as the token subject.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    role : Role
        ``USER`` or ``ADMIN``.
    """

    __tablename__ = "members"
    __repr_attrs__ = ("id", "username", "role")

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="member_role", native_enum=False),
        nullable=False,
        default=Role.USER,
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_members_username"),
        Index("ix_members_username", "username"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    # -------------------- Validators --------------------
    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        """
        Trim and validate the username.

        :raises ValueError: If username is missing or only whitespace.
        """
        if not isinstance(value, str):
            raise ValueError("Username is required.")
        v = value.strip()
        if not v:
            raise ValueError("Username is required.")
        return v
