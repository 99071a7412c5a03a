"""Request/response schemas for the HTTP surface."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from authz.schemas.authz import Actor, Decision, Role


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class ActorResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    branch_id: Optional[str]
    branch_ids: list[str]

    @classmethod
    def from_actor(cls, actor: Actor) -> "ActorResponse":
        return cls(
            id=actor.id,
            name=actor.name,
            email=actor.email,
            role=actor.role,
            branch_id=actor.branch_id,
            branch_ids=list(actor.branch_ids),
        )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    actor: ActorResponse


class DecisionResponse(BaseModel):
    resource: str
    action: str
    decision: Decision


class VisibleResourcesResponse(BaseModel):
    resources: list[str]


class BranchAccessResponse(BaseModel):
    branch_id: str
    allowed: bool


class PermissionModel(BaseModel):
    resource: str = Field(min_length=1, max_length=64)
    actions: list[str]


class RoleResponse(BaseModel):
    id: Optional[str]
    name: str
    is_active: bool
    # None: the store holds no permission data for this role (fallback applies).
    permissions: Optional[list[PermissionModel]]

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        permissions = None
        if role.permissions is not None:
            permissions = [PermissionModel(**p.to_wire()) for p in role.permissions]
        return cls(id=role.id, name=role.name, is_active=role.is_active, permissions=permissions)


class UpdatePermissionsRequest(BaseModel):
    permissions: list[PermissionModel]


class RolePermissionsResponse(BaseModel):
    id: str
    permissions: list[PermissionModel]


class AccessDeniedContact(BaseModel):
    email: str
    phone: str


class AccessDeniedDetail(BaseModel):
    message: str = "You do not have permission to access this resource."
    resource: str
    action: str
    contact: AccessDeniedContact


class AssignBranchesRequest(BaseModel):
    branch_ids: list[str] = Field(max_length=256)


class EmployeeBranchesResponse(BaseModel):
    employee_id: str
    branch_ids: list[str]
