"""Authorization context.

This is the surface the rest of the system talks to. It owns no decision
logic itself; it feeds an actor and the role store snapshot into the pure
resolver and branch filter.

Two ways to supply the actor:
- the `*_for(actor, ...)` methods take it explicitly; the HTTP layer uses
  these with the actor decoded from each request's bearer token;
- the bound methods (`check_permission`, `can_access_branch`, ...) use the
  single persisted session of an in-process client.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional, TypeVar

from authz.core.logs import log_event
from authz.schemas.authz import Actor, Decision
from authz.security import branch_scope
from authz.security.resolver import PermissionResolver
from authz.security.state import RoleStoreState
from authz.services.role_store import RoleStore
from authz.services.session import ActorSession


logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthContext:
    def __init__(
        self,
        session: ActorSession,
        role_store: RoleStore,
        resolver: Optional[PermissionResolver] = None,
    ) -> None:
        self.session = session
        self.role_store = role_store
        self._resolver = resolver or PermissionResolver()

    async def init(self) -> Optional[Actor]:
        """Rehydrate a persisted session and start loading roles."""
        actor = self.session.rehydrate()
        await self.role_store.init()
        return actor

    async def login(self, identifier: str, secret: str) -> Actor:
        actor = await self.session.login(identifier, secret)
        # Role data may have changed since start-up; refresh for the new actor.
        await self.role_store.reload()
        return actor

    async def authenticate(self, identifier: str, secret: str) -> Actor:
        """Verify credentials without touching the in-process session."""
        actor = await self.session.authenticate(identifier, secret)
        await self.role_store.reload()
        return actor

    def logout(self) -> None:
        self.session.logout()

    async def teardown(self) -> None:
        await self.role_store.aclose()
        log_event(logger, "auth_context_teardown")

    def current_actor(self) -> Optional[Actor]:
        return self.session.current()

    @property
    def role_state(self) -> RoleStoreState:
        return self.role_store.state

    def check_for(self, actor: Optional[Actor], resource: str, action: str) -> Decision:
        return self._resolver.check(actor, self.role_store.state, resource, action)

    def visible_resources_for(self, actor: Optional[Actor]) -> list[str]:
        return self._resolver.visible_resources(actor, self.role_store.state)

    def can_access_branch_for(self, actor: Optional[Actor], branch_id: Optional[str]) -> bool:
        if actor is None:
            return False
        return branch_scope.can_access_any_branch(actor.role, actor.effective_branch_ids, branch_id)

    def filter_by_branch_for(self, actor: Optional[Actor], records: Iterable[T]) -> list[T]:
        if actor is None:
            return []
        return branch_scope.filter_by_branch(records, actor.role, branch_ids=actor.effective_branch_ids)

    def check_permission(self, resource: str, action: str) -> Decision:
        return self.check_for(self.current_actor(), resource, action)

    def visible_resources(self) -> list[str]:
        return self.visible_resources_for(self.current_actor())

    def can_access_branch(self, branch_id: Optional[str]) -> bool:
        return self.can_access_branch_for(self.current_actor(), branch_id)

    def filter_by_branch(self, records: Iterable[T]) -> list[T]:
        return self.filter_by_branch_for(self.current_actor(), records)
