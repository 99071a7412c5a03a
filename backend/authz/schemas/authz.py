"""Core authorization value types.

These are the shapes the decision logic consumes. Raw wire data is converted
into them at the store/session boundary and nowhere else.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Decision(str, Enum):
    """Three-valued authorization result.

    PENDING means role data has not finished loading; guards must show a
    loading state instead of treating it as a denial.
    """

    ALLOW = "allow"
    DENY = "deny"
    PENDING = "pending"


class ResourcePermission(BaseModel):
    resource: str = Field(min_length=1)
    actions: frozenset[str] = frozenset()

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return {"resource": self.resource, "actions": sorted(self.actions)}


class Role(BaseModel):
    """Normalized role.

    `permissions` is None when the store holds no permission data at all for
    the role (NULL column), which is different from an explicit empty list.
    """

    id: Optional[str] = None
    name: str
    permissions: Optional[tuple[ResourcePermission, ...]] = None
    is_active: bool = True

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return self.name.lower()


class Actor(BaseModel):
    """The authenticated employee.

    Serialized with camelCase keys (`branchId`, `branchIds`) to keep the
    persisted session layout stable.
    """

    id: str
    name: str
    email: str = ""
    role: str = ""
    branch_id: Optional[str] = Field(default=None, alias="branchId")
    branch_ids: tuple[str, ...] = Field(default=(), alias="branchIds")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def effective_branch_ids(self) -> tuple[str, ...]:
        if self.branch_ids:
            return self.branch_ids
        if self.branch_id:
            return (self.branch_id,)
        return ()

    def to_storage(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "branchId": self.branch_id,
            "branchIds": list(self.branch_ids),
        }
