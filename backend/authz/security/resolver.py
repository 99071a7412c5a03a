"""Permission resolver.

Order of evaluation:
1. no actor, or actor without a role -> DENY
2. role store not settled -> PENDING
3. role "admin" (any case) -> ALLOW, independent of role data
4. provider chain (remote snapshot, then bundled table); the first provider
   that knows the role is authoritative, unknown resources are denied
5. no provider knows the role -> DENY

`check` never raises; unexpected errors are logged and resolve to DENY.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Final, Optional

from authz.core.logs import log_event
from authz.schemas.authz import Actor, Decision
from authz.security.fallback import AVAILABLE_RESOURCES
from authz.security.providers import PermissionProvider, StaticFallbackProvider
from authz.security.state import RoleStoreState


logger = logging.getLogger(__name__)

ADMIN_ROLE: Final[str] = "admin"


def is_admin(role: Optional[str]) -> bool:
    return bool(role) and role.lower() == ADMIN_ROLE


class PermissionResolver:
    def __init__(self, fallback: Optional[PermissionProvider] = None) -> None:
        self._fallback = fallback or StaticFallbackProvider()

    def check(
        self,
        actor: Optional[Actor],
        state: RoleStoreState,
        resource: str,
        action: str,
    ) -> Decision:
        try:
            decision, source = self._resolve(actor, state, resource, action)
        except Exception:  # noqa: BLE001
            logger.exception("Permission check failed; denying", extra={"resource": resource, "action": action})
            return Decision.DENY
        log_event(
            logger,
            "permission_decision",
            level=logging.DEBUG,
            actor_id=actor.id if actor else None,
            role=actor.role if actor else None,
            resource=resource,
            action=action,
            decision=decision.value,
            source=source,
        )
        return decision

    def _resolve(
        self,
        actor: Optional[Actor],
        state: RoleStoreState,
        resource: str,
        action: str,
    ) -> tuple[Decision, str]:
        if actor is None:
            return Decision.DENY, "no_actor"
        if not actor.role:
            return Decision.DENY, "no_role"
        if state.is_pending:
            return Decision.PENDING, state.status.value
        if is_admin(actor.role):
            return Decision.ALLOW, "admin_override"

        for provider in state.providers(self._fallback):
            permissions = provider.resolve(actor.role)
            if permissions is None:
                continue
            allowed = permissions.allows(resource, action)
            return (Decision.ALLOW if allowed else Decision.DENY), provider.name
        return Decision.DENY, "unknown_role"

    def visible_resources(
        self,
        actor: Optional[Actor],
        state: RoleStoreState,
        resources: Iterable[str] = AVAILABLE_RESOURCES,
    ) -> list[str]:
        """Resources the actor may `view`, in the given order (menu filtering)."""
        return [r for r in resources if self.check(actor, state, r, "view") is Decision.ALLOW]


_DEFAULT_RESOLVER = PermissionResolver()


def check_permission(
    actor: Optional[Actor],
    state: RoleStoreState,
    resource: str,
    action: str,
) -> Decision:
    return _DEFAULT_RESOLVER.check(actor, state, resource, action)
