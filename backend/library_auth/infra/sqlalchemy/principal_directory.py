from __future__ import annotations

from collections.abc import Callable

from library_auth.repositories.member import MemberRepository
from library_auth.services._shared.ports import PrincipalDirectory
from library_auth.services.auth.dto import Principal


class SQLAlchemyPrincipalDirectory(PrincipalDirectory):
    """Resolve principals from the ``members`` table."""

    def __init__(self, repository_factory: Callable[[], MemberRepository] = MemberRepository) -> None:
        self._repository_factory = repository_factory

    def find_by_username(self, username: str) -> Principal | None:
        member = self._repository_factory().get_by_username(username)
        if member is None:
            return None
        return Principal(username=member.username, role=member.role, password_hash=member.password_hash)
