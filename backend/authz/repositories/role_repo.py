"""Role table repository.

Returns raw permission payloads untouched; normalization is the role
store's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sqlalchemy import Select, func, or_, select, update

from authz.models.role import RoleRecord
from authz.repositories.base import BaseRepository


@dataclass(frozen=True, slots=True)
class RawRoleDTO:
    id: str
    name: str
    permissions: Any
    is_active: bool


def _active():
    # NULL is_active is treated as active, matching rows created before the flag existed.
    return or_(RoleRecord.is_active.is_(True), RoleRecord.is_active.is_(None))


class RoleRepository(BaseRepository[RoleRecord]):
    async def fetch_roles(self) -> Sequence[RawRoleDTO]:
        """All active roles, oldest first (so duplicate resolution is stable)."""
        stmt: Select = select(RoleRecord).where(_active()).order_by(RoleRecord.created_at, RoleRecord.id)
        rows = (await self._execute(stmt)).scalars().all()
        return [_to_dto(r) for r in rows]

    async def fetch_role_by_name(self, name: str) -> Optional[RawRoleDTO]:
        """Case-insensitive lookup of an active role."""
        stmt: Select = (
            select(RoleRecord)
            .where(func.lower(RoleRecord.name) == name.lower())
            .where(_active())
            .order_by(RoleRecord.created_at, RoleRecord.id)
            .limit(1)
        )
        row = (await self._execute(stmt)).scalars().first()
        return _to_dto(row) if row is not None else None

    async def update_permissions(self, role_id: str, permissions: list[dict[str, Any]]) -> bool:
        """Overwrite a role's permissions. Returns False when no such role exists.

        Last write wins; there is no version check.
        """
        stmt = (
            update(RoleRecord)
            .where(RoleRecord.id == role_id)
            .values(permissions=permissions, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self._execute_write(stmt)
        return bool(result.rowcount)


def _to_dto(m: RoleRecord) -> RawRoleDTO:
    return RawRoleDTO(
        id=str(m.id),
        name=m.name,
        permissions=m.permissions,
        is_active=m.is_active is not False,
    )
