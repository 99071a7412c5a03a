"""Employee credential and branch affiliation repository."""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import Select, delete, func, insert, select

from authz.core.base import new_id
from authz.models.employee import Employee, EmployeeBranch
from authz.repositories.base import BaseRepository


@dataclass(frozen=True, slots=True)
class EmployeeRecord:
    id: str
    name: str
    email: str
    role: str
    branch_id: Optional[str]
    is_active: bool
    branch_ids: tuple[str, ...] = field(default=())


class EmployeeRepository(BaseRepository[Employee]):
    async def authenticate(self, identifier: str, secret: str) -> Optional[EmployeeRecord]:
        """Return the employee whose email and password match, else None.

        Inactive employees are returned too so the caller can tell "inactive"
        apart from "wrong password".
        """
        stmt: Select = select(Employee).where(func.lower(Employee.email) == identifier.strip().lower()).limit(1)
        row = (await self._execute(stmt)).scalars().first()
        if row is None:
            return None
        if not hmac.compare_digest(row.password.encode("utf-8"), secret.encode("utf-8")):
            return None
        return EmployeeRecord(
            id=str(row.id),
            name=row.name,
            email=row.email,
            role=row.role,
            branch_id=row.branch_id,
            is_active=bool(row.is_active),
        )

    async def get_branch_ids(self, employee_id: str) -> Sequence[str]:
        stmt: Select = (
            select(EmployeeBranch.branch_id)
            .where(EmployeeBranch.employee_id == employee_id)
            .order_by(EmployeeBranch.created_at, EmployeeBranch.id)
        )
        return list((await self._execute(stmt)).scalars().all())

    async def assign_branches(self, employee_id: str, branch_ids: Sequence[str]) -> bool:
        """Replace an employee's branch assignments with `branch_ids`.

        Returns False (and writes nothing) when the employee does not exist.
        """
        exists = (await self._execute(select(Employee.id).where(Employee.id == employee_id))).first()
        if exists is None:
            return False
        await self._execute_write(delete(EmployeeBranch).where(EmployeeBranch.employee_id == employee_id))
        unique = list(dict.fromkeys(b for b in branch_ids if b))
        if unique:
            await self._execute_write(
                insert(EmployeeBranch),
                params=[{"id": new_id(), "employee_id": employee_id, "branch_id": b} for b in unique],
            )
        return True
