"""SQL-backed role source and employee directory.

Each call opens its own short-lived session; the role store and actor
session outlive any single unit of work. Sessions are synchronous, so every
unit of work runs in a worker thread: the event loop stays free and
`asyncio.wait_for` timeouts can fire while the database is slow.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from authz.repositories.employee_repo import EmployeeRecord, EmployeeRepository
from authz.repositories.role_repo import RawRoleDTO, RoleRepository
from authz.security.errors import StoreError


R = TypeVar("R")
UnitOfWork = Callable[[Session], Awaitable[R]]


def _run_unit_of_work(session_factory: sessionmaker[Session], work: UnitOfWork[R]) -> R:
    # Repository coroutines never suspend on a sync Session; a private loop in
    # the worker thread drives them to completion.
    with session_factory() as session:
        return asyncio.run(work(session))


async def run_in_session(session_factory: sessionmaker[Session], work: UnitOfWork[R]) -> R:
    return await asyncio.to_thread(_run_unit_of_work, session_factory, work)


class SqlRoleSource:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def fetch_roles(self) -> Sequence[RawRoleDTO]:
        try:
            return await run_in_session(self._session_factory, lambda s: RoleRepository(s).fetch_roles())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch roles: {e.__class__.__name__}") from e

    async def fetch_role_by_name(self, name: str) -> Optional[RawRoleDTO]:
        try:
            return await run_in_session(self._session_factory, lambda s: RoleRepository(s).fetch_role_by_name(name))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch role {name!r}: {e.__class__.__name__}") from e

    async def update_permissions(self, role_id: str, permissions: list[dict[str, Any]]) -> bool:
        try:
            return await run_in_session(
                self._session_factory,
                lambda s: RoleRepository(s).update_permissions(role_id, permissions),
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update role {role_id}: {e.__class__.__name__}") from e


class SqlEmployeeDirectory:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def authenticate(self, identifier: str, secret: str) -> Optional[EmployeeRecord]:
        return await run_in_session(
            self._session_factory,
            lambda s: EmployeeRepository(s).authenticate(identifier, secret),
        )

    async def get_branch_ids(self, employee_id: str) -> Sequence[str]:
        return await run_in_session(self._session_factory, lambda s: EmployeeRepository(s).get_branch_ids(employee_id))

    async def assign_branches(self, employee_id: str, branch_ids: Sequence[str]) -> bool:
        try:
            return await run_in_session(
                self._session_factory,
                lambda s: EmployeeRepository(s).assign_branches(employee_id, branch_ids),
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to assign branches for {employee_id}: {e.__class__.__name__}") from e
