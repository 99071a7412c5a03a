"""Permission payload normalization and the resolved PermissionSet.

All tolerance for malformed wire data lives in `normalize_permissions`.
Downstream code only ever sees `ResourcePermission` values.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import ValidationError

from authz.core.logs import log_event
from authz.schemas.authz import ResourcePermission
from authz.security.errors import PermissionDataError


logger = logging.getLogger(__name__)


def _parse_entry(entry: Any) -> ResourcePermission:
    if isinstance(entry, ResourcePermission):
        return entry
    if not isinstance(entry, Mapping):
        raise PermissionDataError(f"permission entry must be an object, got {type(entry).__name__}")
    actions = entry.get("actions")
    if not isinstance(actions, (list, tuple, set, frozenset)):
        raise PermissionDataError("permission entry 'actions' must be a list")
    try:
        return ResourcePermission(
            resource=entry.get("resource"),
            actions=frozenset(a for a in actions if isinstance(a, str)),
        )
    except ValidationError as e:
        raise PermissionDataError(f"invalid permission entry: {e.error_count()} error(s)") from e


def _decode(raw: Any) -> list[Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise PermissionDataError("permissions string is not valid JSON") from e
    if isinstance(raw, (list, tuple)):
        return list(raw)
    raise PermissionDataError(f"permissions must be an array, got {type(raw).__name__}")


def normalize_permissions(raw: Any, *, role: str = "") -> list[ResourcePermission]:
    """Coerce a raw permissions value into a list of ResourcePermission.

    Arrays are used as-is (malformed entries dropped), strings are parsed as
    JSON, anything else becomes an empty list. Never raises.
    """
    if raw is None:
        return []
    try:
        entries = _decode(raw)
    except PermissionDataError as e:
        log_event(logger, "permission_data_invalid", level=logging.WARNING, role=role, reason=str(e))
        return []

    result: list[ResourcePermission] = []
    for index, entry in enumerate(entries):
        try:
            result.append(_parse_entry(entry))
        except PermissionDataError as e:
            log_event(
                logger,
                "permission_entry_dropped",
                level=logging.WARNING,
                role=role,
                index=index,
                reason=str(e),
            )
    return result


class PermissionSet:
    """Immutable resource -> actions mapping.

    Duplicate resources are merged and resources with no actions are dropped,
    so equality is set-of-resource -> set-of-actions equality.
    """

    __slots__ = ("_grants",)

    def __init__(self, permissions: Iterable[ResourcePermission] = ()) -> None:
        grants: dict[str, frozenset[str]] = {}
        for perm in permissions:
            if not perm.actions:
                continue
            grants[perm.resource] = grants.get(perm.resource, frozenset()) | perm.actions
        self._grants = grants

    @classmethod
    def from_raw(cls, raw: Any, *, role: str = "") -> "PermissionSet":
        return cls(normalize_permissions(raw, role=role))

    def has_resource(self, resource: str) -> bool:
        return resource in self._grants

    def actions_for(self, resource: str) -> frozenset[str]:
        return self._grants.get(resource, frozenset())

    def allows(self, resource: str, action: str) -> bool:
        return action in self.actions_for(resource)

    def as_mapping(self) -> dict[str, frozenset[str]]:
        return dict(self._grants)

    def to_permissions(self) -> list[ResourcePermission]:
        return [ResourcePermission(resource=r, actions=a) for r, a in self._grants.items()]

    def to_wire(self) -> list[dict[str, Any]]:
        return [p.to_wire() for p in self.to_permissions()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._grants)

    def __len__(self) -> int:
        return len(self._grants)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionSet):
            return NotImplemented
        return self._grants == other._grants

    def __hash__(self) -> int:
        return hash(frozenset(self._grants.items()))

    def __repr__(self) -> str:
        body = ", ".join(f"{r}={sorted(a)}" for r, a in sorted(self._grants.items()))
        return f"PermissionSet({body})"
