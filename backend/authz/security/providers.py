"""Ordered permission providers.

Each provider answers `resolve(role)` with a PermissionSet, or None when it
has no data for that role. The resolver walks the chain and stops at the
first provider that returns a set.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Protocol

from authz.core.logs import log_event
from authz.schemas.authz import ResourcePermission, Role
from authz.security.fallback import FALLBACK_ROLE_PERMISSIONS
from authz.security.permissions import PermissionSet


logger = logging.getLogger(__name__)


class PermissionProvider(Protocol):
    name: str

    def resolve(self, role: str) -> Optional[PermissionSet]: ...


def index_roles(roles: Iterable[Role]) -> dict[str, Role]:
    """Index active roles by lowercased name; the first of any duplicates wins."""
    index: dict[str, Role] = {}
    for role in roles:
        if not role.is_active:
            continue
        key = role.key
        if key in index:
            log_event(
                logger,
                "duplicate_active_role_ignored",
                level=logging.WARNING,
                role=role.name,
                role_id=role.id,
                kept_role_id=index[key].id,
            )
            continue
        index[key] = role
    return index


class RemoteRoleProvider:
    """Permissions from a loaded role table snapshot."""

    name = "remote"

    def __init__(self, roles: Iterable[Role]) -> None:
        self._by_key = index_roles(roles)

    def resolve(self, role: str) -> Optional[PermissionSet]:
        record = self._by_key.get(role.lower())
        if record is None or record.permissions is None:
            return None
        return PermissionSet(record.permissions)


class StaticFallbackProvider:
    """Permissions from the table bundled with the deployment."""

    name = "fallback"

    def __init__(self, table: Mapping[str, Sequence[ResourcePermission]] = FALLBACK_ROLE_PERMISSIONS) -> None:
        self._by_key = {k.lower(): PermissionSet(v) for k, v in table.items()}

    def resolve(self, role: str) -> Optional[PermissionSet]:
        return self._by_key.get(role.lower())
