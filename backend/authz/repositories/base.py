"""Guarded repository base.

Repositories are the only layer permitted to query the database. Reads and
writes go through separate helpers so each path can enforce its own
statement discipline:
- `_execute` accepts SELECT statements only and refuses to run on a session
  with pending changes.
- `_execute_write` accepts INSERT/UPDATE/DELETE only and commits.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar, Union, cast

from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable
from sqlalchemy.sql.dml import Delete, Insert, Update
from sqlalchemy.sql.selectable import Select


class RepositoryStatementViolation(RuntimeError):
    """Raised when a statement is sent through the wrong repository path."""


SessionLike = Union[Session, AsyncSession]
T = TypeVar("T")


class BaseRepository(Generic[T]):
    def __init__(self, session: SessionLike) -> None:
        self._session: SessionLike = session

    def _sync_session(self) -> Session:
        if isinstance(self._session, AsyncSession):
            return cast(Session, self._session.sync_session)
        return cast(Session, self._session)

    def _assert_clean_uow(self) -> None:
        s = self._sync_session()
        if s.new or s.dirty or s.deleted:
            raise RepositoryStatementViolation(
                "Refusing to read with pending changes in the session "
                f"(new={len(s.new)}, dirty={len(s.dirty)}, deleted={len(s.deleted)})."
            )

    async def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        """Execute a SELECT statement against Session or AsyncSession."""
        if not isinstance(stmt, Select):
            raise RepositoryStatementViolation(
                f"Read path accepts SELECT statements only (got {type(stmt)!r})."
            )
        self._assert_clean_uow()

        if isinstance(self._session, AsyncSession):
            return await self._session.execute(stmt, params or {})
        return self._sync_session().execute(stmt, params or {})

    async def _execute_write(self, stmt: Executable, *, params: Optional[Any] = None) -> Result[Any]:
        """Execute a DML statement and commit; rolls back on failure."""
        if not isinstance(stmt, (Insert, Update, Delete)):
            raise RepositoryStatementViolation(
                f"Write path accepts INSERT/UPDATE/DELETE statements only (got {type(stmt)!r})."
            )

        if isinstance(self._session, AsyncSession):
            try:
                result = await self._session.execute(stmt, params or {})
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise
            return result

        session = self._sync_session()
        try:
            result = session.execute(stmt, params or {})
            session.commit()
        except Exception:
            session.rollback()
            raise
        return result
