"""API dependencies: the per-request principal and the guards.

Every request is authorized as the actor in its own bearer token; nothing
is inherited from other requests or from the process. Guards are pure
consumers of the resolver's Decision:
- ALLOW   -> request proceeds
- PENDING -> 503 with Retry-After (role data still loading; clients show a
             loading state and retry, they must not treat this as denied)
- DENY    -> 403 with the access-denied payload and support contact
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from authz.core.config import Settings
from authz.schemas.api import AccessDeniedContact, AccessDeniedDetail
from authz.schemas.authz import Actor, Decision
from authz.security.errors import TokenError
from authz.security.tokens import actor_from_token
from authz.services.auth_context import AuthContext


PENDING_RETRY_AFTER_SECONDS = 1


def get_auth_context(request: Request) -> AuthContext:
    auth = getattr(request.app.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Authorization not initialized.")
    return auth


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if not header or not header.lower().startswith("bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None


def require_actor(request: Request, settings: Settings = Depends(get_settings_dep)) -> Actor:
    """Extract and verify the bearer token, returning its Actor."""
    token = _bearer_token(request)
    if token is None:
        raise _unauthorized("Missing bearer token.")
    try:
        return actor_from_token(token, secret=settings.token_secret)
    except TokenError as e:
        raise _unauthorized(str(e)) from e


def optional_actor(request: Request, settings: Settings = Depends(get_settings_dep)) -> Optional[Actor]:
    """Actor for endpoints that answer anonymous callers (with DENY)."""
    if request.headers.get("authorization") is None:
        return None
    return require_actor(request, settings)


def access_denied(resource: str, action: str, settings: Settings) -> HTTPException:
    detail = AccessDeniedDetail(
        resource=resource,
        action=action,
        contact=AccessDeniedContact(email=settings.support_email, phone=settings.support_phone),
    )
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail.model_dump())


def require_permission(resource: str, action: str) -> Callable[..., Actor]:
    """FastAPI dependency factory gating a route on (resource, action)."""

    def _dep(
        actor: Actor = Depends(require_actor),
        auth: AuthContext = Depends(get_auth_context),
        settings: Settings = Depends(get_settings_dep),
    ) -> Actor:
        decision = auth.check_for(actor, resource, action)
        if decision is Decision.PENDING:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Checking permissions; role data is still loading.",
                headers={"Retry-After": str(PENDING_RETRY_AFTER_SECONDS)},
            )
        if decision is not Decision.ALLOW:
            raise access_denied(resource, action, settings)
        return actor

    return _dep
