from __future__ import annotations

from typing import Protocol

from library_auth.services.auth.dto import Principal


class PrincipalDirectory(Protocol):
    """Read-only view of the member store, as needed by authentication."""

    def find_by_username(self, username: str) -> Principal | None: ...


class InMemoryPrincipalDirectory(PrincipalDirectory):
    """Dictionary-backed directory used in unit tests."""

    def __init__(self, principals: list[Principal] | None = None) -> None:
        self._by_username: dict[str, Principal] = {p.username: p for p in principals or []}

    def add(self, principal: Principal) -> None:
        self._by_username[principal.username] = principal

    def remove(self, username: str) -> None:
        self._by_username.pop(username, None)

    def find_by_username(self, username: str) -> Principal | None:
        return self._by_username.get(username)
