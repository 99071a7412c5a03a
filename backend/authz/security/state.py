"""Role store snapshots.

A RoleStoreState is an immutable snapshot handed to the resolver. The store
replaces it wholesale on every transition, so readers never observe a
half-applied load.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from authz.schemas.authz import Role
from authz.security.providers import PermissionProvider, RemoteRoleProvider


class LoadStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


@dataclass(frozen=True, slots=True)
class RoleStoreState:
    status: LoadStatus
    roles: tuple[Role, ...] = ()
    error: Optional[str] = None
    generation: int = 0

    @classmethod
    def uninitialized(cls, generation: int = 0) -> "RoleStoreState":
        return cls(status=LoadStatus.UNINITIALIZED, generation=generation)

    @classmethod
    def loading(cls, generation: int) -> "RoleStoreState":
        return cls(status=LoadStatus.LOADING, generation=generation)

    @classmethod
    def loaded(cls, roles: tuple[Role, ...], generation: int) -> "RoleStoreState":
        return cls(status=LoadStatus.LOADED, roles=roles, generation=generation)

    @classmethod
    def failed(cls, error: str, generation: int) -> "RoleStoreState":
        return cls(status=LoadStatus.LOAD_FAILED, error=error, generation=generation)

    @property
    def is_pending(self) -> bool:
        """True until a load has settled, either way."""
        return self.status in (LoadStatus.UNINITIALIZED, LoadStatus.LOADING)

    def providers(self, fallback: PermissionProvider) -> list[PermissionProvider]:
        """Provider chain for this snapshot: remote first when loaded, then fallback."""
        if self.status is LoadStatus.LOADED:
            return [RemoteRoleProvider(self.roles), fallback]
        return [fallback]

    def role_named(self, name: str) -> Optional[Role]:
        key = name.lower()
        for role in self.roles:
            if role.is_active and role.key == key:
                return role
        return None
