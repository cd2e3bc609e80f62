from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

from library_auth.services._shared.ports import PasswordHasher

# Compared against when the username is unknown, so both paths cost a hash check.
_DUMMY_HASH = generate_password_hash("library-auth-timing-equalizer")


class WerkzeugPasswordHasher(PasswordHasher):
    """Verify passwords hashed with :func:`werkzeug.security.generate_password_hash`."""

    def verify(self, password: str, password_hash: str | None) -> bool:
        if password_hash is None:
            check_password_hash(_DUMMY_HASH, password)
            return False
        return check_password_hash(password_hash, password)
