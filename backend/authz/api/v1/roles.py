"""Role administration endpoints (single-writer admin UI path)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from authz.api.deps import get_auth_context, require_permission
from authz.schemas.api import PermissionModel, RolePermissionsResponse, RoleResponse, UpdatePermissionsRequest
from authz.security.errors import StoreError
from authz.security.state import LoadStatus
from authz.services.auth_context import AuthContext
from authz.services.role_store import RoleNotFoundError


router = APIRouter()


@router.get("", response_model=list[RoleResponse], dependencies=[Depends(require_permission("roles", "view"))])
async def list_roles(auth: AuthContext = Depends(get_auth_context)) -> list[RoleResponse]:
    state = auth.role_state
    if state.status is not LoadStatus.LOADED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Role data unavailable; showing fallback permissions only.",
        )
    return [RoleResponse.from_role(r) for r in state.roles if r.is_active]


@router.get("/by-name/{name}", response_model=RoleResponse, dependencies=[Depends(require_permission("roles", "view"))])
async def role_by_name(name: str, auth: AuthContext = Depends(get_auth_context)) -> RoleResponse:
    """Case-insensitive lookup; answered from the snapshot once it is loaded."""
    role = auth.role_store.role_named(name)
    if role is None and auth.role_state.status is not LoadStatus.LOADED:
        try:
            role = await auth.role_store.fetch_role_by_name(name)
        except StoreError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Role store unavailable.") from e
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found.")
    return RoleResponse.from_role(role)


@router.put(
    "/{role_id}/permissions",
    response_model=RolePermissionsResponse,
    dependencies=[Depends(require_permission("roles", "edit"))],
)
async def update_permissions(
    role_id: str,
    body: UpdatePermissionsRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> RolePermissionsResponse:
    try:
        written = await auth.role_store.update(role_id, [p.model_dump() for p in body.permissions])
    except RoleNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found.") from e
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save permissions.") from e
    return RolePermissionsResponse(id=role_id, permissions=[PermissionModel(**p) for p in written.to_wire()])
