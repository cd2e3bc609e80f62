"""Generic repository base for SQLAlchemy 2.x.

Repositories stay persistence-only: no use cases, no commit/rollback.
Callers (services and adapters) own transaction boundaries.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from library_auth.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single mapped class.

    Subclasses MUST define ``model``.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``library_auth.core.extensions``.

        :param session: Session to use instead of ``db.session``.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _select_base(self) -> Select[Any]:
        return select(self.model)

    def get(self, id_: Any) -> E | None:
        """Fetch an entity by primary key."""
        return self.session.get(self.model, id_)

    def add(self, entity: E, *, flush: bool = True) -> E:
        """Stage an entity for insertion, flushing by default to surface constraint errors."""
        self.session.add(entity)
        if flush:
            self.session.flush()
        return entity
