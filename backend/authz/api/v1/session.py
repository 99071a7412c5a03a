"""Login, logout and current-actor endpoints.

Login verifies credentials and returns a signed bearer token; the server
keeps no per-caller session state, so logout only needs the client to drop
its token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from authz.api.deps import get_auth_context, get_settings_dep, require_actor
from authz.core.config import Settings
from authz.core.logs import log_event
from authz.schemas.api import ActorResponse, LoginRequest, LoginResponse
from authz.schemas.authz import Actor
from authz.security.errors import AuthError, AuthFailure
from authz.security.tokens import issue_token, token_fingerprint
from authz.services.auth_context import AuthContext


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    auth: AuthContext = Depends(get_auth_context),
    settings: Settings = Depends(get_settings_dep),
) -> LoginResponse:
    try:
        actor = await auth.authenticate(body.email, body.password)
    except AuthError as e:
        code = status.HTTP_401_UNAUTHORIZED
        if e.reason in (AuthFailure.TIMEOUT, AuthFailure.UNAVAILABLE):
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        raise HTTPException(status_code=code, detail=e.user_message) from e

    token = issue_token(actor, secret=settings.token_secret, ttl_seconds=settings.token_ttl)
    log_event(logger, "token_issued", actor_id=actor.id, token=token_fingerprint(token))
    return LoginResponse(access_token=token, expires_in=settings.token_ttl, actor=ActorResponse.from_actor(actor))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(actor: Actor = Depends(require_actor)) -> Response:
    log_event(logger, "logout", actor_id=actor.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=ActorResponse)
async def me(actor: Actor = Depends(require_actor)) -> ActorResponse:
    return ActorResponse.from_actor(actor)
