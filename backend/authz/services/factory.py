"""Wiring of the authorization context from settings."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from authz.core.config import Settings, get_settings
from authz.core.db import create_db_engine, create_session_factory
from authz.services.auth_context import AuthContext
from authz.services.rest_source import RestRoleSource
from authz.services.role_store import RoleStore
from authz.services.session import ActorSession, FileSessionStorage
from authz.services.sources import RoleSource
from authz.services.sql_sources import SqlEmployeeDirectory, SqlRoleSource


def build_auth_context(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> AuthContext:
    """Build an AuthContext.

    Employees always come from the database. Roles come from the HTTP role
    endpoint when `AUTHZ_ROLES_API_URL` is set, otherwise from the database.
    """
    settings = settings or get_settings()
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(settings.database_url))

    role_source: RoleSource
    if settings.roles_api_url:
        role_source = RestRoleSource(settings.roles_api_url, api_key=settings.roles_api_key)
    else:
        role_source = SqlRoleSource(session_factory)

    session = ActorSession(
        SqlEmployeeDirectory(session_factory),
        FileSessionStorage(settings.session_file),
        login_timeout=settings.login_timeout,
    )
    role_store = RoleStore(role_source, fetch_timeout=settings.role_fetch_timeout)
    return AuthContext(session, role_store)
