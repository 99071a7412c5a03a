"""FastAPI application for the authorization core.

- One role store per process; every request is authorized as the actor in
  its own bearer token.
- Role data loads in the background at start-up; until it settles, guarded
  routes answer 503 + Retry-After instead of a premature 403.
- Request-id propagation and structured JSON access logs.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from authz.api.router import router as api_router
from authz.core.config import Settings, get_settings
from authz.services.auth_context import AuthContext
from authz.services.factory import build_auth_context


logger = logging.getLogger("authz")
logger.setLevel(logging.INFO)


def create_app(auth: Optional[AuthContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the app. Tests pass a prebuilt `auth`; production builds it from env."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings or get_settings()
        if not app.state.settings.token_secret:
            raise RuntimeError("Missing required env var AUTHZ_TOKEN_SECRET.")
        app.state.auth = auth or build_auth_context(app.state.settings)
        load_task = asyncio.create_task(app.state.auth.role_store.init())
        try:
            yield
        finally:
            if not load_task.done():
                load_task.cancel()
                try:
                    await load_task
                except asyncio.CancelledError:
                    pass
            await app.state.auth.teardown()

    app = FastAPI(
        title="Marketplace Admin Authorization API",
        version="1.0.0",
        openapi_url="/openapi.json",
        docs_url=None,
        redoc_url=None,
        description="Permission checks, branch scoping and employee sessions.",
        lifespan=lifespan,
    )
    app.include_router(api_router)

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.time()
        try:
            response = await call_next(request)
        except OperationalError:
            return JSONResponse(
                status_code=503,
                content={"detail": "Service temporarily unavailable."},
                headers={"x-request-id": request_id},
            )
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal error."},
                headers={"x-request-id": request_id},
            )

        duration_ms = int((time.time() - start) * 1000)
        response.headers["x-request-id"] = request_id

        # No headers or bodies: credentials never reach the log.
        logger.info(
            json.dumps(
                {
                    "event": "access",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                }
            )
        )
        return response

    return app


app = create_app()
