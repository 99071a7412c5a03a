"""Employee branch assignment (admin UI branch dialog)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from authz.api.deps import get_auth_context, require_permission
from authz.core.logs import log_event
from authz.schemas.api import AssignBranchesRequest, EmployeeBranchesResponse
from authz.schemas.authz import Actor
from authz.security.errors import StoreError
from authz.services.auth_context import AuthContext


logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/{employee_id}/branches", response_model=EmployeeBranchesResponse)
async def assign_branches(
    employee_id: str,
    body: AssignBranchesRequest,
    actor: Actor = Depends(require_permission("employees", "edit")),
    auth: AuthContext = Depends(get_auth_context),
) -> EmployeeBranchesResponse:
    branch_ids = list(dict.fromkeys(b for b in body.branch_ids if b))
    try:
        found = await auth.session.directory.assign_branches(employee_id, branch_ids)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save branches.") from e
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
    log_event(logger, "branches_assigned", actor_id=actor.id, employee_id=employee_id, branches=len(branch_ids))
    return EmployeeBranchesResponse(employee_id=employee_id, branch_ids=branch_ids)
