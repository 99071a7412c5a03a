"""Role store: an explicitly loaded, immutable snapshot of the role table.

Lifecycle:
- `init()` loads once if nothing has been loaded yet.
- `load()` / `reload()` fetch the table again. A load that is superseded by a
  newer one before it settles is discarded, never merged.
- `teardown()` drops the snapshot and invalidates in-flight loads.

Failures of the backing store settle into LOAD_FAILED; `load()` itself never
raises (except for cancellation, which is re-raised after settling).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from authz.core.config import DEFAULT_ROLE_FETCH_TIMEOUT
from authz.core.logs import log_event
from authz.repositories.role_repo import RawRoleDTO
from authz.schemas.authz import ResourcePermission, Role
from authz.security.errors import StoreError
from authz.security.permissions import PermissionSet, normalize_permissions
from authz.security.state import LoadStatus, RoleStoreState
from authz.services.sources import RoleSource


logger = logging.getLogger(__name__)

PermissionInput = Union[ResourcePermission, Mapping[str, Any]]


class RoleNotFoundError(StoreError):
    """Raised when an update targets a role id the store does not have."""


def to_role(raw: RawRoleDTO) -> Role:
    """Normalize one raw role row. NULL permissions stay None (no data)."""
    permissions = None
    if raw.permissions is not None:
        permissions = tuple(normalize_permissions(raw.permissions, role=raw.name))
    return Role(id=raw.id, name=raw.name, permissions=permissions, is_active=raw.is_active)


def build_roles(raw_roles: Iterable[RawRoleDTO]) -> tuple[Role, ...]:
    roles: list[Role] = []
    for raw in raw_roles:
        try:
            roles.append(to_role(raw))
        except ValidationError:
            log_event(logger, "role_row_skipped", level=logging.WARNING, role_id=getattr(raw, "id", None))
    return tuple(roles)


class RoleStore:
    def __init__(self, source: RoleSource, *, fetch_timeout: float = DEFAULT_ROLE_FETCH_TIMEOUT) -> None:
        self._source = source
        self._fetch_timeout = fetch_timeout
        self._generation = 0
        self._state = RoleStoreState.uninitialized()

    @property
    def state(self) -> RoleStoreState:
        return self._state

    async def init(self) -> RoleStoreState:
        if self._state.status is LoadStatus.UNINITIALIZED:
            return await self.load()
        return self._state

    async def reload(self) -> RoleStoreState:
        return await self.load()

    async def load(self) -> RoleStoreState:
        self._generation += 1
        generation = self._generation
        self._state = RoleStoreState.loading(generation)
        started = time.monotonic()
        log_event(logger, "role_store_load_started", generation=generation)

        try:
            raw_roles = await asyncio.wait_for(self._source.fetch_roles(), timeout=self._fetch_timeout)
            result = RoleStoreState.loaded(build_roles(raw_roles), generation)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = RoleStoreState.failed("cancelled", generation)
            raise
        except asyncio.TimeoutError:
            result = RoleStoreState.failed(f"timed out after {self._fetch_timeout:g}s", generation)
        except StoreError as e:
            result = RoleStoreState.failed(str(e), generation)
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error loading roles")
            result = RoleStoreState.failed(f"unexpected error: {e.__class__.__name__}", generation)

        duration_ms = int((time.monotonic() - started) * 1000)
        if generation != self._generation:
            log_event(
                logger,
                "role_store_load_superseded",
                generation=generation,
                current_generation=self._generation,
                duration_ms=duration_ms,
            )
            return self._state

        self._state = result
        if result.status is LoadStatus.LOADED:
            log_event(
                logger,
                "role_store_loaded",
                generation=generation,
                roles=len(result.roles),
                duration_ms=duration_ms,
            )
        else:
            log_event(
                logger,
                "role_store_load_failed",
                level=logging.WARNING,
                generation=generation,
                error=result.error,
                duration_ms=duration_ms,
            )
        return result

    def teardown(self) -> None:
        self._generation += 1
        self._state = RoleStoreState.uninitialized(self._generation)
        log_event(logger, "role_store_teardown", generation=self._generation)

    async def aclose(self) -> None:
        """Tear down and release the source's resources (HTTP client)."""
        self.teardown()
        close = getattr(self._source, "aclose", None)
        if close is not None:
            await close()

    def role_named(self, name: str) -> Optional[Role]:
        return self._state.role_named(name)

    async def fetch_role_by_name(self, name: str) -> Optional[Role]:
        """Point lookup against the backing store, bypassing the snapshot.

        Raises StoreError when the store cannot be read.
        """
        try:
            raw = await self._source.fetch_role_by_name(name)
        except StoreError:
            raise
        except Exception as e:  # noqa: BLE001
            raise StoreError(f"Failed to fetch role {name!r}: {e.__class__.__name__}") from e
        return to_role(raw) if raw is not None else None

    async def update(self, role_id: str, permissions: Sequence[PermissionInput]) -> PermissionSet:
        """Persist a new permission set for a role.

        The payload is normalized before it is written, so what is stored is
        exactly what a later `load()` will read back. Concurrent updates are
        last-write-wins. Raises StoreError (RoleNotFoundError for an unknown
        id) on failure.
        """
        normalized = PermissionSet(
            normalize_permissions([p.to_wire() if isinstance(p, ResourcePermission) else p for p in permissions])
        )
        wire = normalized.to_wire()
        try:
            updated = await self._source.update_permissions(role_id, wire)
        except StoreError:
            raise
        except Exception as e:  # noqa: BLE001
            raise StoreError(f"Failed to update role {role_id}: {e.__class__.__name__}") from e
        if not updated:
            raise RoleNotFoundError(f"Role {role_id} does not exist")

        log_event(logger, "role_permissions_updated", role_id=role_id, resources=len(normalized))
        if self._state.status is LoadStatus.LOADING:
            # The in-flight load may have read the table before this write;
            # supersede it so its snapshot is never installed.
            await self.load()
        else:
            self._apply_local_update(role_id, normalized)
        return normalized

    def _apply_local_update(self, role_id: str, permissions: PermissionSet) -> None:
        state = self._state
        if state.status is not LoadStatus.LOADED:
            return
        roles = tuple(
            r.model_copy(update={"permissions": tuple(permissions.to_permissions())}) if r.id == role_id else r
            for r in state.roles
        )
        self._state = RoleStoreState.loaded(roles, state.generation)
