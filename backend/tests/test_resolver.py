from __future__ import annotations

import pytest

from authz.schemas.authz import Actor, Decision, ResourcePermission, Role
from authz.security.fallback import AVAILABLE_ACTIONS, AVAILABLE_RESOURCES
from authz.security.permissions import normalize_permissions
from authz.security.providers import StaticFallbackProvider
from authz.security.resolver import PermissionResolver, check_permission
from authz.security.state import RoleStoreState


def _actor(role: str = "sales", **kwargs) -> Actor:
    return Actor(id="emp-1", name="Asha", email="asha@example.com", role=role, **kwargs)


def _role(name: str, raw, *, role_id: str | None = None, is_active: bool = True) -> Role:
    permissions = None if raw is None else tuple(normalize_permissions(raw, role=name))
    return Role(id=role_id or f"role-{name}", name=name, permissions=permissions, is_active=is_active)


def _loaded(*roles: Role) -> RoleStoreState:
    return RoleStoreState.loaded(tuple(roles), generation=1)


SALES = _role("sales", [{"resource": "orders", "actions": ["view", "create"]}])


@pytest.mark.parametrize("role", ["Admin", "ADMIN", "admin"])
def test_admin_override_without_any_role_data(role):
    resolver = PermissionResolver(fallback=StaticFallbackProvider(table={}))
    state = _loaded()
    for resource in ("orders", "anything", "roles"):
        for action in ("view", "delete", "launch"):
            assert resolver.check(_actor(role), state, resource, action) is Decision.ALLOW


@pytest.mark.parametrize("role", [" admin ", "admin\n", " "])
def test_role_names_are_lowercased_not_trimmed(role):
    resolver = PermissionResolver(fallback=StaticFallbackProvider(table={}))
    state = _loaded(_role("admin", []))
    assert resolver.check(_actor(role), state, "roles", "edit") is Decision.DENY


def test_admin_override_beats_restrictive_role_record():
    state = _loaded(_role("admin", []))
    assert check_permission(_actor("admin"), state, "employees", "delete") is Decision.ALLOW


def test_admin_allowed_when_store_failed():
    state = RoleStoreState.failed("down", generation=1)
    assert check_permission(_actor("Admin"), state, "roles", "edit") is Decision.ALLOW


def test_strict_deny_by_default():
    state = _loaded(SALES)
    actor = _actor("sales")
    assert check_permission(actor, state, "orders", "create") is Decision.ALLOW
    assert check_permission(actor, state, "orders", "delete") is Decision.DENY
    assert check_permission(actor, state, "employees", "view") is Decision.DENY


def test_loaded_role_is_not_supplemented_by_fallback():
    # The bundled table grants sales `dashboard:view`; the loaded record does not.
    state = _loaded(SALES)
    assert check_permission(_actor("sales"), state, "dashboard", "view") is Decision.DENY


def test_role_lookup_is_case_insensitive_but_resource_match_is_exact():
    state = _loaded(_role("Sales", [{"resource": "orders", "actions": ["view"]}]))
    actor = _actor("SALES")
    assert check_permission(actor, state, "orders", "view") is Decision.ALLOW
    assert check_permission(actor, state, "Orders", "view") is Decision.DENY


def test_malformed_permissions_never_raise_and_deny_everything():
    state = _loaded(_role("manager", "{not valid json"))
    actor = _actor("manager")
    for resource in AVAILABLE_RESOURCES:
        for action in AVAILABLE_ACTIONS:
            assert check_permission(actor, state, resource, action) is Decision.DENY


def test_explicit_empty_permissions_are_authoritative():
    state = _loaded(_role("manager", []))
    assert check_permission(_actor("manager"), state, "dashboard", "view") is Decision.DENY


def test_null_permissions_fall_back_to_bundled_table():
    state = _loaded(_role("manager", None))
    actor = _actor("manager")
    assert check_permission(actor, state, "farmers", "edit") is Decision.ALLOW
    assert check_permission(actor, state, "farmers", "delete") is Decision.DENY


def test_unknown_role_falls_back_then_denies():
    state = _loaded(SALES)
    assert check_permission(_actor("manager"), state, "banners", "create") is Decision.ALLOW
    assert check_permission(_actor("courier"), state, "orders", "view") is Decision.DENY


def test_inactive_role_record_is_ignored():
    state = _loaded(_role("sales", [{"resource": "orders", "actions": ["delete"]}], is_active=False))
    # Falls through to the bundled sales entry, which has no `orders` resource.
    assert check_permission(_actor("sales"), state, "orders", "delete") is Decision.DENY
    assert check_permission(_actor("sales"), state, "customers", "create") is Decision.ALLOW


def test_first_active_duplicate_wins():
    state = _loaded(
        _role("sales", [{"resource": "orders", "actions": ["view"]}], role_id="r1"),
        _role("SALES", [{"resource": "orders", "actions": ["delete"]}], role_id="r2"),
    )
    assert check_permission(_actor("sales"), state, "orders", "view") is Decision.ALLOW
    assert check_permission(_actor("sales"), state, "orders", "delete") is Decision.DENY


@pytest.mark.parametrize("state", [RoleStoreState.loading(1), RoleStoreState.uninitialized()])
def test_pending_while_role_store_not_settled(state):
    actor = _actor("sales")
    for resource in ("orders", "employees", "unknown"):
        for action in ("view", "delete"):
            assert check_permission(actor, state, resource, action) is Decision.PENDING


def test_missing_actor_or_role_denies_even_while_loading():
    state = RoleStoreState.loading(1)
    assert check_permission(None, state, "orders", "view") is Decision.DENY
    assert check_permission(_actor(""), state, "orders", "view") is Decision.DENY
    assert check_permission(_actor("   "), state, "orders", "view") is Decision.DENY


def test_load_failure_degrades_to_fallback():
    state = RoleStoreState.failed("timed out", generation=2)
    actor = _actor("sales")
    assert check_permission(actor, state, "customers", "edit") is Decision.ALLOW
    assert check_permission(actor, state, "customers", "delete") is Decision.DENY


def test_repeated_checks_are_identical():
    state = _loaded(SALES)
    actor = _actor("sales")
    first = [check_permission(actor, state, r, a) for r in ("orders", "x") for a in ("view", "delete")]
    second = [check_permission(actor, state, r, a) for r in ("orders", "x") for a in ("view", "delete")]
    assert first == second


def test_provider_errors_resolve_to_deny():
    class Broken:
        name = "broken"

        def resolve(self, role):
            raise RuntimeError("boom")

    resolver = PermissionResolver(fallback=Broken())
    state = RoleStoreState.failed("down", generation=1)
    assert resolver.check(_actor("sales"), state, "orders", "view") is Decision.DENY


def test_visible_resources_follow_view_permission():
    resolver = PermissionResolver()
    state = _loaded(
        _role(
            "support",
            [
                {"resource": "tickets", "actions": ["view", "edit"]},
                {"resource": "customers", "actions": ["view"]},
                {"resource": "orders", "actions": ["edit"]},
            ],
        )
    )
    assert resolver.visible_resources(_actor("support"), state) == ["customers", "tickets"]
    assert resolver.visible_resources(_actor("admin"), state) == list(AVAILABLE_RESOURCES)
    assert resolver.visible_resources(_actor("support"), RoleStoreState.loading(1)) == []


def test_resource_permission_with_empty_actions_is_absent():
    state = _loaded(
        Role(id="r", name="clerk", permissions=(ResourcePermission(resource="orders", actions=frozenset()),))
    )
    assert check_permission(_actor("clerk"), state, "orders", "view") is Decision.DENY
