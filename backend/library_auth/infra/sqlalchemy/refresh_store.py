"""Relational refresh store on the ``refresh_records`` table."""

from __future__ import annotations

from collections.abc import Callable
from typing import cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from library_auth.core.extensions import db
from library_auth.models.refresh_record import RefreshRecord
from library_auth.services._shared.ports import (
    RefreshSessionView,
    RefreshStore,
    RotationResult,
)


def _flask_session() -> Session:
    return cast(Session, db.session)


class SQLAlchemyRefreshStore(RefreshStore):
    """
    Refresh store backed by one row per username.

    Atomicity comes from the database: rotation is a single conditional
    ``UPDATE ... WHERE username = :p AND token = :presented``. Only one of two
    concurrent statements can match the old value; the loser sees a row
    count of zero and falls through to reuse handling.

    Every operation commits its own transaction.

    :param session_provider: Returns the session to use (defaults to the
        Flask-scoped ``db.session``).
    """

    def __init__(self, session_provider: Callable[[], Session] | None = None) -> None:
        self._session = session_provider or _flask_session

    @staticmethod
    def _rowcount(result: object) -> int:
        return cast(CursorResult, result).rowcount

    def get(self, principal: str) -> RefreshSessionView | None:
        session = self._session()
        token = session.execute(
            select(RefreshRecord.token).where(RefreshRecord.username == principal)
        ).scalar_one_or_none()
        if token is None:
            return None
        return RefreshSessionView(principal=principal, token=token)

    def put(self, principal: str, token: str) -> None:
        session = self._session()
        try:
            if not self._overwrite(session, principal, token):
                session.execute(insert(RefreshRecord).values(username=principal, token=token))
            session.commit()
        except IntegrityError:
            # concurrent first login inserted the row; overwrite it instead
            session.rollback()
            self._overwrite(session, principal, token)
            session.commit()

    def delete(self, principal: str) -> bool:
        session = self._session()
        result = session.execute(delete(RefreshRecord).where(RefreshRecord.username == principal))
        session.commit()
        return self._rowcount(result) > 0

    def rotate(self, *, principal: str, presented: str, replacement: str) -> RotationResult:
        session = self._session()
        swapped = session.execute(
            update(RefreshRecord)
            .where(RefreshRecord.username == principal, RefreshRecord.token == presented)
            .values(token=replacement)
            .execution_options(synchronize_session=False)
        )
        if self._rowcount(swapped) == 1:
            session.commit()
            return RotationResult.OK

        revoked = session.execute(
            delete(RefreshRecord)
            .where(RefreshRecord.username == principal, RefreshRecord.token != presented)
            .execution_options(synchronize_session=False)
        )
        session.commit()
        if self._rowcount(revoked) > 0:
            return RotationResult.REUSED
        return RotationResult.NOT_FOUND

    def discard(self, principal: str, token: str) -> bool:
        session = self._session()
        result = session.execute(
            delete(RefreshRecord)
            .where(RefreshRecord.username == principal, RefreshRecord.token == token)
            .execution_options(synchronize_session=False)
        )
        session.commit()
        return self._rowcount(result) > 0

    @staticmethod
    def _overwrite(session: Session, principal: str, token: str) -> bool:
        result = session.execute(
            update(RefreshRecord)
            .where(RefreshRecord.username == principal)
            .values(token=token)
            .execution_options(synchronize_session=False)
        )
        return cast(CursorResult, result).rowcount > 0
