"""Contracts for the remote collaborators the authorization core consumes."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from authz.repositories.employee_repo import EmployeeRecord
from authz.repositories.role_repo import RawRoleDTO


class RoleSource(Protocol):
    """Remote role table. Payloads are returned raw; callers normalize."""

    async def fetch_roles(self) -> Sequence[RawRoleDTO]: ...

    async def fetch_role_by_name(self, name: str) -> Optional[RawRoleDTO]: ...

    async def update_permissions(self, role_id: str, permissions: list[dict[str, Any]]) -> bool: ...


class EmployeeDirectory(Protocol):
    """Remote credential check plus branch affiliations."""

    async def authenticate(self, identifier: str, secret: str) -> Optional[EmployeeRecord]: ...

    async def get_branch_ids(self, employee_id: str) -> Sequence[str]: ...

    async def assign_branches(self, employee_id: str, branch_ids: Sequence[str]) -> bool: ...
