"""Repository for the :class:`~library_auth.models.member.Member` model."""

from __future__ import annotations

from sqlalchemy import exists, select

from library_auth.models.member import Member
from library_auth.repositories.base import BaseRepository


class MemberRepository(BaseRepository[Member]):
    """Lookups by the unique, immutable username."""

    model = Member

    def get_by_username(self, username: str) -> Member | None:
        stmt = self._select_base().where(Member.username == username.strip())
        return self.session.execute(stmt).scalars().first()

    def exists_by_username(self, username: str) -> bool:
        stmt = select(exists().where(Member.username == username.strip()))
        return bool(self.session.execute(stmt).scalar())
