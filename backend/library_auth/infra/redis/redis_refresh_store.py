# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from library_auth.services._shared.ports import (
    RefreshSessionView,
    RefreshStore,
    RotationResult,
    tokens_match,
)


@dataclass(slots=True)
class RedisRefreshStore(RefreshStore):
    """
    Redis-backed refresh store: one string key per principal.

    Keys expire with the refresh token lifetime, so a record never outlives
    the last token written to it.

    :param r: A Redis client (already connected).
    :param ttl: Refresh token lifetime.
    """

    r: redis.Redis
    ttl: timedelta

    # -------------------- helpers --------------------

    @staticmethod
    def _k(principal: str) -> str:
        return f"rt:{principal}"

    def _ttl_seconds(self) -> int:
        return max(1, int(self.ttl.total_seconds()))

    # -------------------- API ------------------------

    def get(self, principal: str) -> RefreshSessionView | None:
        raw = cast(bytes | None, self.r.get(self._k(principal)))
        if raw is None:
            return None
        return RefreshSessionView(principal=principal, token=raw.decode())

    def put(self, principal: str, token: str) -> None:
        self.r.set(self._k(principal), token, ex=self._ttl_seconds())

    def delete(self, principal: str) -> bool:
        return cast(int, self.r.delete(self._k(principal))) == 1

    def rotate(self, *, principal: str, presented: str, replacement: str) -> RotationResult:
        """
        Compare-and-swap the stored token.

        Uses WATCH/MULTI/EXEC (optimistic locking): if another client touches
        the key between the read and the write, EXEC fails and the whole
        read-compare-write is retried against the new value.
        """
        key = self._k(principal)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)

                    stored = p.get(key)
                    if stored is None:
                        p.unwatch()
                        return RotationResult.NOT_FOUND

                    p.multi()
                    if not tokens_match(stored, presented):
                        # stale or replayed token: revoke the session
                        p.delete(key)
                        p.execute()
                        return RotationResult.REUSED

                    p.set(key, replacement, ex=self._ttl_seconds())
                    p.execute()
                    return RotationResult.OK

            except redis.WatchError:
                # Concurrent modification detected; retry loop
                continue

    def discard(self, principal: str, token: str) -> bool:
        key = self._k(principal)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    stored = p.get(key)
                    if stored is None or not tokens_match(stored, token):
                        p.unwatch()
                        return False
                    p.multi()
                    p.delete(key)
                    p.execute()
                    return True
            except redis.WatchError:
                continue
