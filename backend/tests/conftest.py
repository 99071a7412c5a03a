from __future__ import annotations

import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/authz` is importable as top-level `authz` for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from authz.core.base import Base  # noqa: E402
from authz.core.config import Settings  # noqa: E402
import authz.models  # noqa: E402,F401
from authz.repositories.employee_repo import EmployeeRecord  # noqa: E402
from authz.repositories.role_repo import RawRoleDTO  # noqa: E402


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    eng = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url="sqlite://",
        roles_api_url=None,
        roles_api_key=None,
        session_file=tmp_path / "session.json",
        role_fetch_timeout=2.0,
        login_timeout=3.0,
        support_email="support@example.com",
        support_phone="+1 555 0100",
        token_secret="test-secret",
        token_ttl=3600,
    )


def raw_role(name: str, permissions: Any, *, role_id: Optional[str] = None, is_active: bool = True) -> RawRoleDTO:
    return RawRoleDTO(id=role_id or f"role-{name.lower()}", name=name, permissions=permissions, is_active=is_active)


class FakeRoleSource:
    """In-memory role table with the same contract as the SQL/HTTP sources."""

    def __init__(self, roles: Sequence[RawRoleDTO] = (), *, error: Optional[BaseException] = None) -> None:
        self.roles = list(roles)
        self.error = error
        self.fetch_calls = 0

    async def fetch_roles(self) -> Sequence[RawRoleDTO]:
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.roles)

    async def fetch_role_by_name(self, name: str) -> Optional[RawRoleDTO]:
        if self.error is not None:
            raise self.error
        for role in self.roles:
            if role.is_active and role.name.lower() == name.lower():
                return role
        return None

    async def update_permissions(self, role_id: str, permissions: list[dict[str, Any]]) -> bool:
        if self.error is not None:
            raise self.error
        for i, role in enumerate(self.roles):
            if role.id == role_id:
                self.roles[i] = dataclasses.replace(role, permissions=permissions)
                return True
        return False


class FakeDirectory:
    def __init__(self) -> None:
        self._employees: dict[str, tuple[str, EmployeeRecord]] = {}
        self._branches: dict[str, list[str]] = {}
        self.delay: float = 0.0
        self.error: Optional[BaseException] = None

    def add(
        self,
        email: str,
        password: str,
        *,
        role: str,
        name: str = "Test Employee",
        branch_id: Optional[str] = None,
        branch_ids: Sequence[str] = (),
        is_active: bool = True,
    ) -> EmployeeRecord:
        record = EmployeeRecord(
            id=f"emp-{len(self._employees) + 1}",
            name=name,
            email=email,
            role=role,
            branch_id=branch_id,
            is_active=is_active,
        )
        self._employees[email] = (password, record)
        self._branches[record.id] = list(branch_ids)
        return record

    async def authenticate(self, identifier: str, secret: str) -> Optional[EmployeeRecord]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        entry = self._employees.get(identifier)
        if entry is None or entry[0] != secret:
            return None
        return entry[1]

    async def get_branch_ids(self, employee_id: str) -> Sequence[str]:
        return list(self._branches.get(employee_id, []))

    async def assign_branches(self, employee_id: str, branch_ids: Sequence[str]) -> bool:
        if self.error is not None:
            raise self.error
        if employee_id not in self._branches:
            return False
        self._branches[employee_id] = list(branch_ids)
        return True


def make_auth(
    tmp_path: Path,
    source: Any,
    directory: Optional[FakeDirectory] = None,
    *,
    fetch_timeout: float = 2.0,
):
    """AuthContext over in-memory fakes and a file session under `tmp_path`."""
    from authz.services.auth_context import AuthContext
    from authz.services.role_store import RoleStore
    from authz.services.session import ActorSession, FileSessionStorage

    session = ActorSession(directory or FakeDirectory(), FileSessionStorage(tmp_path / "session.json"))
    return AuthContext(session, RoleStore(source, fetch_timeout=fetch_timeout))


def bearer(actor: Any, secret: str = "test-secret", *, ttl_seconds: int = 3600) -> dict[str, str]:
    from authz.security.tokens import issue_token

    return {"Authorization": f"Bearer {issue_token(actor, secret=secret, ttl_seconds=ttl_seconds)}"}
