"""Bundled fallback permission table.

Used when the remote role table has no usable data for a role (cold or
unreachable store). Operators should note this table can diverge from the
roles configured in the admin UI; it is deliberately conservative for
non-admin roles.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from authz.schemas.authz import ResourcePermission


AVAILABLE_RESOURCES: Final[tuple[str, ...]] = (
    "dashboard",
    "farmers",
    "customers",
    "products",
    "categories",
    "sales",
    "sales-dashboard",
    "transactions",
    "tickets",
    "coupons",
    "banners",
    "employees",
    "roles",
    "settlements",
)

AVAILABLE_ACTIONS: Final[tuple[str, ...]] = ("view", "create", "edit", "delete")

_CRUD = ("view", "create", "edit", "delete")
_CRU = ("view", "create", "edit")
_VIEW = ("view",)


def _table(grants: Mapping[str, tuple[str, ...]]) -> tuple[ResourcePermission, ...]:
    return tuple(ResourcePermission(resource=r, actions=frozenset(a)) for r, a in grants.items())


FALLBACK_ROLE_PERMISSIONS: Final[Mapping[str, tuple[ResourcePermission, ...]]] = {
    "admin": _table(
        {
            "dashboard": _VIEW,
            "farmers": _CRUD,
            "customers": _CRUD,
            "products": _CRUD,
            "categories": _CRUD,
            "sales": _CRUD,
            "sales-dashboard": _VIEW,
            "transactions": _CRUD,
            "tickets": _CRUD,
            "coupons": _CRUD,
            "banners": _CRUD,
            "employees": _CRUD,
            "roles": _CRUD,
            "settlements": _CRUD,
        }
    ),
    "manager": _table(
        {
            "dashboard": _VIEW,
            "farmers": _CRU,
            "customers": _CRU,
            "products": _CRU,
            "categories": _CRU,
            "sales": _CRU,
            "sales-dashboard": _VIEW,
            "transactions": _VIEW,
            "tickets": _CRU,
            "coupons": _CRU,
            "banners": _CRU,
            "employees": _VIEW,
            "settlements": _CRU,
        }
    ),
    "sales": _table(
        {
            "dashboard": _VIEW,
            "customers": _CRU,
            "products": _VIEW,
            "categories": _VIEW,
            "sales": _CRU,
            "sales-dashboard": _VIEW,
            "transactions": _VIEW,
            "tickets": ("view", "create"),
            "coupons": _VIEW,
        }
    ),
}
