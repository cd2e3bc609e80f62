"""Server-side refresh session: at most one row per member."""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from library_auth.core.extensions import db

from .base import ReprMixin, TimestampMixin


class RefreshRecord(ReprMixin, TimestampMixin, db.Model):
    """
    The single refresh token currently accepted for a member.

    Keyed by ``username`` (primary key) so the one-record-per-principal rule is
    enforced by the database itself. The username is the only link to
    :class:`~library_auth.models.member.Member`; there is no relationship.
    """

    __tablename__ = "refresh_records"
    __repr_attrs__ = ("username",)

    username: Mapped[str] = mapped_column(String(50), primary_key=True)
    token: Mapped[str] = mapped_column(Text, nullable=False)
