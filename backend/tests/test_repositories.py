from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from authz.models.employee import Employee, EmployeeBranch
from authz.models.role import RoleRecord
from authz.repositories.base import BaseRepository, RepositoryStatementViolation
from authz.repositories.employee_repo import EmployeeRepository
from authz.repositories.role_repo import RoleRepository
from authz.security.errors import StoreError
from authz.security.state import LoadStatus
from authz.services.role_store import RoleStore
from authz.services.sql_sources import SqlEmployeeDirectory, SqlRoleSource


UTC = timezone.utc
T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _seed_roles(db: Session) -> None:
    db.add_all(
        [
            RoleRecord(id="r1", name="Sales", permissions=[{"resource": "orders", "actions": ["view"]}],
                       is_active=True, created_at=T0),
            RoleRecord(id="r2", name="manager", permissions="{not valid json", is_active=True,
                       created_at=T0 + timedelta(seconds=1)),
            RoleRecord(id="r3", name="clerk", permissions=None, is_active=None, created_at=T0 + timedelta(seconds=2)),
            RoleRecord(id="r4", name="retired", permissions=[], is_active=False, created_at=T0 + timedelta(seconds=3)),
        ]
    )
    db.commit()


def test_read_path_rejects_dirty_session(db_session: Session):
    db_session.add(RoleRecord(name="pending", permissions=[]))
    repo: BaseRepository[RoleRecord] = BaseRepository(db_session)
    with pytest.raises(RepositoryStatementViolation):
        asyncio.run(repo._execute(select(RoleRecord)))


def test_read_path_rejects_dml(db_session: Session):
    repo: BaseRepository[RoleRecord] = BaseRepository(db_session)
    with pytest.raises(RepositoryStatementViolation):
        asyncio.run(repo._execute(insert(RoleRecord)))


def test_write_path_rejects_select(db_session: Session):
    repo: BaseRepository[RoleRecord] = BaseRepository(db_session)
    with pytest.raises(RepositoryStatementViolation):
        asyncio.run(repo._execute_write(select(RoleRecord)))


def test_fetch_roles_returns_active_raw_payloads(db_session: Session):
    _seed_roles(db_session)
    roles = asyncio.run(RoleRepository(db_session).fetch_roles())

    assert [r.id for r in roles] == ["r1", "r2", "r3"]
    assert roles[0].permissions == [{"resource": "orders", "actions": ["view"]}]
    assert roles[1].permissions == "{not valid json"
    assert roles[2].permissions is None
    assert roles[2].is_active is True


def test_fetch_role_by_name_is_case_insensitive(db_session: Session):
    _seed_roles(db_session)
    repo = RoleRepository(db_session)
    assert asyncio.run(repo.fetch_role_by_name("SALES")).id == "r1"
    assert asyncio.run(repo.fetch_role_by_name("retired")) is None
    assert asyncio.run(repo.fetch_role_by_name("nobody")) is None


def test_update_permissions(db_session: Session):
    _seed_roles(db_session)
    repo = RoleRepository(db_session)
    wire = [{"resource": "tickets", "actions": ["view", "create"]}]
    assert asyncio.run(repo.update_permissions("r2", wire)) is True
    assert asyncio.run(repo.update_permissions("missing", wire)) is False
    db_session.expire_all()
    assert asyncio.run(repo.fetch_role_by_name("manager")).permissions == wire


def test_sql_role_source_round_trip_through_store(session_factory):
    with session_factory() as db:
        _seed_roles(db)
    store = RoleStore(SqlRoleSource(session_factory))

    async def scenario():
        await store.load()
        await store.update("r1", [{"resource": "orders", "actions": ["view", "edit"]}])
        return await store.reload()

    state = asyncio.run(scenario())
    assert state.status is LoadStatus.LOADED
    sales = state.role_named("sales")
    assert sales is not None
    assert {p.resource: p.actions for p in sales.permissions} == {"orders": frozenset({"view", "edit"})}


def test_sql_role_source_wraps_database_errors(engine, session_factory):
    RoleRecord.__table__.drop(engine)
    with pytest.raises(StoreError):
        asyncio.run(SqlRoleSource(session_factory).fetch_roles())
    state = asyncio.run(RoleStore(SqlRoleSource(session_factory)).load())
    assert state.status is LoadStatus.LOAD_FAILED


def _seed_employees(db: Session) -> None:
    db.add_all(
        [
            Employee(id="e1", name="Ravi", email="Ravi@Example.com", password="s3cret", role="manager",
                     branch_id="B0", is_active=True),
            Employee(id="e2", name="Old", email="old@example.com", password="pw", role="sales", is_active=False),
        ]
    )
    db.flush()
    db.add_all(
        [
            EmployeeBranch(employee_id="e1", branch_id="B1", created_at=T0),
            EmployeeBranch(employee_id="e1", branch_id="B2", created_at=T0 + timedelta(seconds=1)),
        ]
    )
    db.commit()


def test_authenticate(db_session: Session):
    _seed_employees(db_session)
    repo = EmployeeRepository(db_session)

    record = asyncio.run(repo.authenticate("ravi@example.com", "s3cret"))
    assert record is not None
    assert (record.id, record.role, record.branch_id, record.is_active) == ("e1", "manager", "B0", True)

    assert asyncio.run(repo.authenticate("ravi@example.com", "S3CRET")) is None
    assert asyncio.run(repo.authenticate("nobody@example.com", "s3cret")) is None

    inactive = asyncio.run(repo.authenticate("old@example.com", "pw"))
    assert inactive is not None and inactive.is_active is False


def test_branch_ids_and_reassignment(db_session: Session):
    _seed_employees(db_session)
    repo = EmployeeRepository(db_session)
    assert asyncio.run(repo.get_branch_ids("e1")) == ["B1", "B2"]

    assert asyncio.run(repo.assign_branches("e1", ["B3", "B3", "B4"])) is True
    assert sorted(asyncio.run(repo.get_branch_ids("e1"))) == ["B3", "B4"]

    assert asyncio.run(repo.assign_branches("e1", [])) is True
    assert asyncio.run(repo.get_branch_ids("e1")) == []


def test_sql_directory_login_flow(session_factory, tmp_path):
    from authz.services.session import ActorSession, FileSessionStorage

    with session_factory() as db:
        _seed_employees(db)
    session = ActorSession(SqlEmployeeDirectory(session_factory), FileSessionStorage(tmp_path / "s.json"))
    actor = asyncio.run(session.login("RAVI@example.com", "s3cret"))
    assert actor.id == "e1"
    assert actor.branch_ids == ("B1", "B2")


@pytest.fixture()
def slow_cursor(engine):
    from sqlalchemy import event

    def _sleep(conn, cursor, statement, parameters, context, executemany):
        time.sleep(0.5)

    event.listen(engine, "before_cursor_execute", _sleep)
    yield
    event.remove(engine, "before_cursor_execute", _sleep)


def test_role_fetch_timeout_fires_on_slow_database(session_factory, slow_cursor):
    store = RoleStore(SqlRoleSource(session_factory), fetch_timeout=0.05)

    async def scenario():
        started = time.monotonic()
        state = await store.load()
        return state, time.monotonic() - started

    state, elapsed = asyncio.run(scenario())
    assert state.status is LoadStatus.LOAD_FAILED
    assert "timed out" in (state.error or "")
    assert elapsed < 0.4


def test_slow_database_does_not_block_the_event_loop(session_factory, slow_cursor):
    async def scenario():
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.01)

        task = asyncio.create_task(ticker())
        await SqlRoleSource(session_factory).fetch_roles()
        task.cancel()
        return ticks

    assert asyncio.run(scenario()) > 10


def test_login_timeout_fires_on_slow_database(session_factory, slow_cursor, tmp_path):
    from authz.security.errors import AuthError, AuthFailure
    from authz.services.session import ActorSession, FileSessionStorage

    session = ActorSession(
        SqlEmployeeDirectory(session_factory),
        FileSessionStorage(tmp_path / "s.json"),
        login_timeout=0.05,
    )

    async def scenario():
        started = time.monotonic()
        with pytest.raises(AuthError) as info:
            await session.login("ravi@example.com", "s3cret")
        return info.value, time.monotonic() - started

    error, elapsed = asyncio.run(scenario())
    assert error.reason is AuthFailure.TIMEOUT
    assert elapsed < 0.4


def test_assign_branches_unknown_employee(db_session: Session):
    _seed_employees(db_session)
    repo = EmployeeRepository(db_session)
    assert asyncio.run(repo.assign_branches("missing", ["B1"])) is False
    assert asyncio.run(repo.get_branch_ids("missing")) == []


def test_sql_directory_assigns_branches(session_factory):
    with session_factory() as db:
        _seed_employees(db)
    directory = SqlEmployeeDirectory(session_factory)
    assert asyncio.run(directory.assign_branches("e1", ["B9"])) is True
    assert asyncio.run(directory.get_branch_ids("e1")) == ["B9"]
    assert asyncio.run(directory.assign_branches("nobody", ["B9"])) is False
