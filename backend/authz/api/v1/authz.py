"""Authorization query endpoints for clients that render their own guards."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from authz.api.deps import get_auth_context, optional_actor, require_actor
from authz.schemas.api import BranchAccessResponse, DecisionResponse, VisibleResourcesResponse
from authz.schemas.authz import Actor
from authz.services.auth_context import AuthContext


router = APIRouter()


@router.get("/check", response_model=DecisionResponse)
async def check(
    resource: str = Query(..., min_length=1, max_length=64),
    action: str = Query(..., min_length=1, max_length=32),
    actor: Optional[Actor] = Depends(optional_actor),
    auth: AuthContext = Depends(get_auth_context),
) -> DecisionResponse:
    """Always 200 for anonymous or valid callers; the decision is in the body."""
    return DecisionResponse(resource=resource, action=action, decision=auth.check_for(actor, resource, action))


@router.get("/resources", response_model=VisibleResourcesResponse)
async def visible_resources(
    actor: Actor = Depends(require_actor),
    auth: AuthContext = Depends(get_auth_context),
) -> VisibleResourcesResponse:
    return VisibleResourcesResponse(resources=auth.visible_resources_for(actor))


@router.get("/branches/{branch_id}", response_model=BranchAccessResponse)
async def branch_access(
    branch_id: str,
    actor: Actor = Depends(require_actor),
    auth: AuthContext = Depends(get_auth_context),
) -> BranchAccessResponse:
    return BranchAccessResponse(branch_id=branch_id, allowed=auth.can_access_branch_for(actor, branch_id))
