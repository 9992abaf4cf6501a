"""
Tests for page/feature access resolution and flat permissions.

Override precedence: user override, then primary-role override, then the
page/feature default. Custom permissions replace role permissions entirely.
"""
import uuid

import pytest

from ticketdesk.core.errors import DuplicateRoleName, SystemRoleViolation
from ticketdesk.modules.access.schemas import RoleCreate, RoleUpdate
from ticketdesk.modules.access.service import PermissionResolver, RoleService


async def test_page_default_applies_without_overrides(seeded_store, make_user):
    agent = await make_user("Ana")
    resolver = PermissionResolver(seeded_store)

    users_page = await resolver.resolve_access(agent.id, "users")
    dashboard = await resolver.resolve_access(agent.id, "dashboard")

    assert users_page.enabled is False and users_page.source == "default"
    assert dashboard.enabled is True and dashboard.source == "default"


async def test_role_override_beats_default(seeded_store, make_user):
    agent = await make_user("Ana")
    role = await seeded_store.get_role_by_name("Agent")
    resolver = PermissionResolver(seeded_store)

    await resolver.set_role_page_access(role.id, "users", True)
    decision = await resolver.resolve_access(agent.id, "users")

    assert decision.enabled is True
    assert decision.source == "role-override"


async def test_user_override_beats_role_override(seeded_store, make_user):
    agent = await make_user("Ana")
    role = await seeded_store.get_role_by_name("Agent")
    resolver = PermissionResolver(seeded_store)

    await resolver.set_role_page_access(role.id, "users", True)
    await resolver.set_user_page_access(agent.id, "users", False, reason="contractor")
    decision = await resolver.resolve_access(agent.id, "users")

    assert decision.enabled is False
    assert decision.source == "user-override"


async def test_removing_role_override_reverts_to_page_default(seeded_store, make_user):
    agent = await make_user("Ana")
    role = await seeded_store.get_role_by_name("Agent")
    resolver = PermissionResolver(seeded_store)

    await resolver.set_role_page_access(role.id, "users", True)
    assert (await resolver.resolve_access(agent.id, "users")).enabled is True

    removed = await resolver.clear_page_access("role", role.id, "users")
    decision = await resolver.resolve_access(agent.id, "users")

    assert removed is True
    assert decision.enabled is False, "Page default should apply once the role override is gone"
    assert decision.source == "default"


async def test_only_primary_role_overrides_pages(seeded_store, make_user):
    user = await make_user("Ana", role="Agent", roles=["Admin"])
    admin = await seeded_store.get_role_by_name("Admin")
    resolver = PermissionResolver(seeded_store)

    await resolver.set_role_page_access(admin.id, "users", True)
    decision = await resolver.resolve_access(user.id, "users")

    assert decision.enabled is False
    assert decision.source == "default"


async def test_feature_resolution_is_independent_of_page(seeded_store, make_user):
    agent = await make_user("Ana")
    resolver = PermissionResolver(seeded_store)

    await resolver.set_user_page_access(agent.id, "tickets", False)
    feature = await resolver.resolve_access(agent.id, "tickets", "export")

    assert feature.enabled is True
    assert feature.source == "default"

    await resolver.set_user_feature_access(agent.id, "tickets", "export", False)
    feature = await resolver.resolve_access(agent.id, "tickets", "export")
    assert feature.enabled is False and feature.source == "user-override"


async def test_unknown_or_inactive_targets_fail_closed(seeded_store, make_user):
    agent = await make_user("Ana")
    resolver = PermissionResolver(seeded_store)

    page = await seeded_store.get_page("dashboard")
    page.is_active = False

    for decision in (
        await resolver.resolve_access(uuid.uuid4(), "dashboard"),
        await resolver.resolve_access(agent.id, "no-such-page"),
        await resolver.resolve_access(agent.id, "tickets", "no-such-feature"),
        await resolver.resolve_access(agent.id, "dashboard"),
    ):
        assert decision.enabled is False
        assert decision.source == "default"


async def test_override_write_for_unknown_page_is_rejected(seeded_store, make_user):
    agent = await make_user("Ana")
    resolver = PermissionResolver(seeded_store)

    assert await resolver.set_user_page_access(agent.id, "no-such-page", True) is None
    assert await resolver.set_user_page_access(uuid.uuid4(), "dashboard", True) is None


async def test_override_writes_are_audited(seeded_store, make_user):
    agent = await make_user("Ana")
    actor = uuid.uuid4()
    resolver = PermissionResolver(seeded_store)

    await resolver.set_user_page_access(agent.id, "users", True, actor_id=actor, reason="temporary cover")
    await resolver.clear_page_access("user", agent.id, "users", actor_id=actor)

    actions = [e.action for e in await seeded_store.list_audit()]
    assert actions[:2] == ["override.clear", "override.set"]
    assert seeded_store.audit[0].actor_user_id == actor
    assert seeded_store.audit[0].detail["reason"] == "temporary cover"


async def test_effective_access_covers_all_active_pages(seeded_store, make_user):
    agent = await make_user("Ana")
    resolver = PermissionResolver(seeded_store)
    await resolver.set_user_feature_access(agent.id, "users", "create", True)

    access = await resolver.effective_access(agent.id)

    assert access.pages["dashboard"] is True
    assert access.pages["roles"] is False
    assert access.features["users"]["create"] is True
    assert access.features["tickets"]["delete"] is False
    assert await resolver.effective_access(uuid.uuid4()) is None


async def test_flat_permissions_are_union_of_roles(seeded_store, make_user):
    user = await make_user("Ana", role="Agent", roles=["Head"])
    resolver = PermissionResolver(seeded_store)

    eff = await resolver.effective_permissions(user.id)

    assert eff.source == "roles"
    assert "view:assigned_tickets" in eff.permissions  # Agent
    assert "view:analytics" in eff.permissions  # Head
    assert await resolver.has_permission(user.id, "delete:users") is False


async def test_custom_permissions_unaffected_by_role_change(seeded_store, make_user):
    user = await make_user("Ana", role="Agent")
    roles = RoleService(seeded_store)
    resolver = PermissionResolver(seeded_store)

    await roles.set_custom_permissions(user.id, ["view:tickets"])
    agent_role = await seeded_store.get_role_by_name("Agent")
    await roles.update_role(agent_role.id, RoleUpdate(permissions=["view:tickets", "delete:users"]))

    eff = await resolver.effective_permissions(user.id)
    assert eff.source == "custom"
    assert eff.permissions == ["view:tickets"]
    assert await resolver.has_permission(user.id, "delete:users") is False


async def test_empty_custom_permissions_deny_everything(seeded_store, make_user):
    user = await make_user("Ana", role="Owner")
    await RoleService(seeded_store).set_custom_permissions(user.id, [])

    assert await PermissionResolver(seeded_store).has_permission(user.id, "view:dashboard") is False

    # null goes back to the role
    await RoleService(seeded_store).set_custom_permissions(user.id, None)
    assert await PermissionResolver(seeded_store).has_permission(user.id, "view:dashboard") is True


async def test_system_roles_cannot_be_renamed_or_deleted(seeded_store):
    roles = RoleService(seeded_store)
    admin = await seeded_store.get_role_by_name("Admin")

    with pytest.raises(SystemRoleViolation):
        await roles.update_role(admin.id, RoleUpdate(name="Superuser"))
    with pytest.raises(SystemRoleViolation):
        await roles.delete_role(admin.id)

    updated = await roles.update_role(admin.id, RoleUpdate(permissions=["view:dashboard"]))
    assert updated.permissions == ["view:dashboard"]


async def test_custom_role_rename_follows_users(seeded_store, make_user):
    roles = RoleService(seeded_store)
    role = await roles.create_role(RoleCreate(name="Auditor", permissions=["view:tickets"]))
    user = await make_user("Ana", role="Auditor")

    assert await roles.create_role(RoleCreate(name="Auditor")) is None

    await roles.update_role(role.id, RoleUpdate(name="Reviewer"))
    assert (await seeded_store.get_user(user.id)).role == "Reviewer"

    assert await roles.delete_role(role.id) is True
    assert await seeded_store.get_role_by_name("Reviewer") is None


async def test_rename_onto_existing_role_is_rejected(seeded_store, make_user):
    roles = RoleService(seeded_store)
    role = await roles.create_role(RoleCreate(name="Triage"))
    user = await make_user("Ana", role="Triage")

    with pytest.raises(DuplicateRoleName):
        await roles.update_role(role.id, RoleUpdate(name="Agent"))

    names = [r.name for r in await roles.list_roles()]
    assert names.count("Agent") == 1
    assert "Triage" in names
    assert (await seeded_store.get_user(user.id)).role == "Triage", "Users keep the old role name"


async def test_deleting_role_drops_its_overrides(seeded_store, make_user):
    roles = RoleService(seeded_store)
    resolver = PermissionResolver(seeded_store)
    role = await roles.create_role(RoleCreate(name="Auditor"))

    await resolver.set_role_page_access(role.id, "users", True)
    await roles.delete_role(role.id)

    assert await seeded_store.get_page_access_overrides("role", role.id) == {}


async def test_seeding_is_idempotent(store):
    from ticketdesk.modules.access.seed import seed_rule_store

    first = await seed_rule_store(store)
    second = await seed_rule_store(store)

    assert first["roles"] == 7
    assert second == {"roles": 0, "pages": 0, "features": 0, "fields": 0}
