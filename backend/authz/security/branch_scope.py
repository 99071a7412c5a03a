"""Branch scoping for branch-tagged records.

A record with `branch_id` None is global and visible to everyone. Admins see
every record; other actors see records of their own branch(es) only. These
functions are pure: no I/O and the input collection is never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional, TypeVar

from authz.security.resolver import is_admin


T = TypeVar("T")

_MISSING = object()


def can_access_branch(role: Optional[str], actor_branch_id: Optional[str], target_branch_id: Optional[str]) -> bool:
    if is_admin(role):
        return True
    return target_branch_id is None or actor_branch_id == target_branch_id


def can_access_any_branch(role: Optional[str], branch_ids: Sequence[str], target_branch_id: Optional[str]) -> bool:
    """Multi-branch variant: the target must be one of `branch_ids` (or global)."""
    if is_admin(role):
        return True
    return target_branch_id is None or target_branch_id in branch_ids


def record_branch_id(record: Any) -> Any:
    """Return the record's branch tag; records without one yield a sentinel."""
    if isinstance(record, Mapping):
        return record.get("branch_id", _MISSING)
    return getattr(record, "branch_id", _MISSING)


def filter_by_branch(
    records: Iterable[T],
    role: Optional[str],
    actor_branch_id: Optional[str] = None,
    *,
    branch_ids: Sequence[str] = (),
) -> list[T]:
    """Return the records visible to an actor, preserving order.

    With non-empty `branch_ids` the predicate is membership in that list;
    otherwise equality with `actor_branch_id`. Untagged records (no
    `branch_id` attribute at all) are not visible to non-admins.
    """
    items = list(records)
    if is_admin(role):
        return items

    allowed = set(branch_ids) if branch_ids else {actor_branch_id}
    visible: list[T] = []
    for record in items:
        branch = record_branch_id(record)
        if branch is _MISSING:
            continue
        if branch is None or branch in allowed:
            visible.append(record)
    return visible
