"""Role source backed by a PostgREST-style HTTP endpoint.

The managed backend exposes the `roles` table at `{base_url}/roles`. Any
transport failure, non-2xx status or undecodable body is raised as
StoreError so the role store can settle into LOAD_FAILED.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from authz.core.logs import log_event
from authz.repositories.role_repo import RawRoleDTO
from authz.security.errors import StoreError


logger = logging.getLogger(__name__)

_ROLE_COLUMNS = "id,name,permissions,is_active"


class RestRoleSource:
    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)
        self._headers = headers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"Role endpoint returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StoreError(f"Role endpoint unreachable: {e.__class__.__name__}") from e
        try:
            return response.json()
        except ValueError as e:
            raise StoreError("Role endpoint returned a non-JSON body") from e

    async def fetch_roles(self) -> Sequence[RawRoleDTO]:
        rows = await self._request(
            "GET",
            "/roles",
            params={"select": _ROLE_COLUMNS, "is_active": "not.is.false", "order": "created_at.asc"},
        )
        return _to_dtos(rows)

    async def fetch_role_by_name(self, name: str) -> Optional[RawRoleDTO]:
        key = name.lower()
        rows = await self._request(
            "GET",
            "/roles",
            params={"select": _ROLE_COLUMNS, "name": f"ilike.{key}", "is_active": "not.is.false"},
        )
        # ilike treats `*` and `_` as wildcards; confirm the exact match here.
        for dto in _to_dtos(rows):
            if dto.name.lower() == key:
                return dto
        return None

    async def update_permissions(self, role_id: str, permissions: list[dict[str, Any]]) -> bool:
        rows = await self._request(
            "PATCH",
            "/roles",
            params={"id": f"eq.{role_id}"},
            json={"permissions": permissions},
            headers={"Prefer": "return=representation"},
        )
        return isinstance(rows, list) and len(rows) > 0


def _to_dtos(rows: Any) -> list[RawRoleDTO]:
    if not isinstance(rows, list):
        raise StoreError(f"Role endpoint returned {type(rows).__name__}, expected a list")
    dtos: list[RawRoleDTO] = []
    for row in rows:
        if not isinstance(row, dict) or not isinstance(row.get("name"), str) or row.get("id") is None:
            log_event(logger, "role_row_skipped", level=logging.WARNING, reason="missing id or name")
            continue
        dtos.append(
            RawRoleDTO(
                id=str(row["id"]),
                name=row["name"],
                permissions=row.get("permissions"),
                is_active=row.get("is_active") is not False,
            )
        )
    return dtos
