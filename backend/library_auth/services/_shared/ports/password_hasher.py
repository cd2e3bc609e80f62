from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Verification half of the password-hash scheme.

    ``password_hash`` may be ``None`` when the username is unknown; the
    implementation must still spend comparable time and return ``False``.
    """

    def verify(self, password: str, password_hash: str | None) -> bool: ...
