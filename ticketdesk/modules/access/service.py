import logging
import uuid
from typing import Callable, Iterable

from ticketdesk.core.errors import DuplicateRoleName, SystemRoleViolation
from ticketdesk.modules.access.models import User, Role
from ticketdesk.modules.access.schemas import (
    AccessDecision, EffectiveAccess, EffectivePermissions, RoleCreate, RoleUpdate, UserCreate,
)
from ticketdesk.platform.ports.rule_store import RuleStorePort, Scope

logger = logging.getLogger(__name__)

DENY = AccessDecision(enabled=False, source="default")

def _first_decided(chain: Iterable[tuple[str, Callable[[], bool | None]]]) -> AccessDecision:
    # first strategy with an opinion wins; levels are never merged
    for source, lookup in chain:
        value = lookup()
        if value is not None:
            return AccessDecision(enabled=value, source=source)
    return DENY


class PermissionResolver:
    def __init__(self, store: RuleStorePort):
        self.store = store

    async def _overrides(self, user: User, feature: bool):
        """Load the user's own and primary-role override maps for pages or features."""
        fetch = self.store.get_feature_access_overrides if feature else self.store.get_page_access_overrides
        user_map = await fetch("user", user.id)
        role = await self.store.get_role_by_name(user.role)
        role_map = await fetch("role", role.id) if role else {}
        return user_map, role_map

    async def resolve_access(self, user_id: uuid.UUID, page_key: str, feature_key: str | None = None) -> AccessDecision:
        user = await self.store.get_user(user_id)
        if not user:
            return DENY

        if feature_key is None:
            page = await self.store.get_page(page_key)
            if not page or not page.is_active:
                return DENY
            user_map, role_map = await self._overrides(user, feature=False)
            key, default = page_key, page.default_enabled
        else:
            feat = await self.store.get_feature(page_key, feature_key)
            if not feat or not feat.is_active:
                return DENY
            user_map, role_map = await self._overrides(user, feature=True)
            key, default = (page_key, feature_key), feat.default_enabled

        return _first_decided([
            ("user-override", lambda: user_map.get(key)),
            ("role-override", lambda: role_map.get(key)),
            ("default", lambda: default),
        ])

    async def effective_access(self, user_id: uuid.UUID) -> EffectiveAccess | None:
        user = await self.store.get_user(user_id)
        if not user:
            return None
        out = EffectiveAccess(user_id=user.id)

        user_pages, role_pages = await self._overrides(user, feature=False)
        for page in await self.store.list_pages():
            if not page.is_active:
                continue
            out.pages[page.page_key] = _first_decided([
                ("user-override", lambda k=page.page_key: user_pages.get(k)),
                ("role-override", lambda k=page.page_key: role_pages.get(k)),
                ("default", lambda p=page: p.default_enabled),
            ]).enabled

        user_feats, role_feats = await self._overrides(user, feature=True)
        for feat in await self.store.list_features():
            if not feat.is_active:
                continue
            key = (feat.page_key, feat.feature_key)
            out.features.setdefault(feat.page_key, {})[feat.feature_key] = _first_decided([
                ("user-override", lambda k=key: user_feats.get(k)),
                ("role-override", lambda k=key: role_feats.get(k)),
                ("default", lambda f=feat: f.default_enabled),
            ]).enabled
        return out

    async def effective_permissions(self, user_id: uuid.UUID) -> EffectivePermissions | None:
        user = await self.store.get_user(user_id)
        if not user:
            return None
        if user.custom_permissions is not None:
            # custom list replaces every role, an empty list denies all
            return EffectivePermissions(user_id=user.id, permissions=sorted(set(user.custom_permissions)), source="custom")
        perms: set[str] = set()
        for role in await self.store.get_roles_by_user(user):
            perms.update(role.permissions or [])
        return EffectivePermissions(user_id=user.id, permissions=sorted(perms), source="roles")

    async def has_permission(self, user_id: uuid.UUID, permission: str) -> bool:
        eff = await self.effective_permissions(user_id)
        return bool(eff) and permission in eff.permissions

    # ---- override writes ----
    async def _scope_exists(self, scope: Scope, key: uuid.UUID) -> bool:
        if scope == "role":
            return await self.store.get_role(key) is not None
        return await self.store.get_user(key) is not None

    async def set_page_access(self, scope: Scope, key: uuid.UUID, page_key: str, enabled: bool, *,
                              actor_id: uuid.UUID | None = None, reason: str | None = None) -> AccessDecision | None:
        if not await self._scope_exists(scope, key) or not await self.store.get_page(page_key):
            return None
        await self.store.set_page_access_override(scope, key, page_key, enabled, reason=reason, set_by=actor_id)
        await self.store.record_audit(actor_id, "override.set", f"{scope}_page_access", str(key),
                                      {"page_key": page_key, "enabled": enabled, "reason": reason})
        await self.store.commit()
        logger.info(f"{scope} {key} page {page_key} -> {enabled}")
        return AccessDecision(enabled=enabled, source=f"{scope}-override")

    async def set_feature_access(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str, enabled: bool, *,
                                 actor_id: uuid.UUID | None = None, reason: str | None = None) -> AccessDecision | None:
        if not await self._scope_exists(scope, key) or not await self.store.get_feature(page_key, feature_key):
            return None
        await self.store.set_feature_access_override(scope, key, page_key, feature_key, enabled, reason=reason, set_by=actor_id)
        await self.store.record_audit(actor_id, "override.set", f"{scope}_feature_access", str(key),
                                      {"page_key": page_key, "feature_key": feature_key, "enabled": enabled, "reason": reason})
        await self.store.commit()
        logger.info(f"{scope} {key} feature {page_key}.{feature_key} -> {enabled}")
        return AccessDecision(enabled=enabled, source=f"{scope}-override")

    async def clear_page_access(self, scope: Scope, key: uuid.UUID, page_key: str, *, actor_id: uuid.UUID | None = None) -> bool:
        removed = await self.store.delete_page_access_override(scope, key, page_key)
        if removed:
            await self.store.record_audit(actor_id, "override.clear", f"{scope}_page_access", str(key), {"page_key": page_key})
            await self.store.commit()
        return removed

    async def clear_feature_access(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str, *,
                                   actor_id: uuid.UUID | None = None) -> bool:
        removed = await self.store.delete_feature_access_override(scope, key, page_key, feature_key)
        if removed:
            await self.store.record_audit(actor_id, "override.clear", f"{scope}_feature_access", str(key),
                                          {"page_key": page_key, "feature_key": feature_key})
            await self.store.commit()
        return removed

    # named entry points used by the admin screens
    async def set_role_page_access(self, role_id, page_key, enabled, **kw):
        return await self.set_page_access("role", role_id, page_key, enabled, **kw)

    async def set_user_page_access(self, user_id, page_key, enabled, **kw):
        return await self.set_page_access("user", user_id, page_key, enabled, **kw)

    async def set_role_feature_access(self, role_id, page_key, feature_key, enabled, **kw):
        return await self.set_feature_access("role", role_id, page_key, feature_key, enabled, **kw)

    async def set_user_feature_access(self, user_id, page_key, feature_key, enabled, **kw):
        return await self.set_feature_access("user", user_id, page_key, feature_key, enabled, **kw)


class RoleService:
    """Role and user administration. System roles keep their name forever; only their permission set changes."""

    def __init__(self, store: RuleStorePort):
        self.store = store

    async def list_roles(self):
        return await self.store.list_roles()

    async def create_role(self, payload: RoleCreate, actor_id: uuid.UUID | None = None) -> Role | None:
        if await self.store.get_role_by_name(payload.name):
            return None
        role = await self.store.save_role(Role(
            name=payload.name,
            description=payload.description,
            is_system=False,
            permissions=sorted(set(payload.permissions)),
        ))
        await self.store.record_audit(actor_id, "role.create", "role", str(role.id), {"name": role.name})
        await self.store.commit()
        return role

    async def update_role(self, role_id: uuid.UUID, payload: RoleUpdate, actor_id: uuid.UUID | None = None) -> Role | None:
        role = await self.store.get_role(role_id)
        if not role:
            return None
        if payload.name is not None and payload.name != role.name:
            if role.is_system:
                raise SystemRoleViolation(f"System role '{role.name}' cannot be renamed")
            if await self.store.get_role_by_name(payload.name):
                raise DuplicateRoleName(f"Role '{payload.name}' already exists")
            old_name = role.name
            role.name = payload.name
            # users reference roles by name
            for user in await self.store.list_users():
                if user.role == old_name:
                    user.role = payload.name
                if old_name in (user.roles or []):
                    user.roles = [payload.name if r == old_name else r for r in user.roles]
                await self.store.save_user(user)
        if payload.description is not None:
            role.description = payload.description
        if payload.permissions is not None:
            role.permissions = sorted(set(payload.permissions))
        await self.store.save_role(role)
        await self.store.record_audit(actor_id, "role.update", "role", str(role.id), payload.model_dump(exclude_unset=True))
        await self.store.commit()
        return role

    async def delete_role(self, role_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> bool:
        role = await self.store.get_role(role_id)
        if not role:
            return False
        if role.is_system:
            raise SystemRoleViolation(f"System role '{role.name}' cannot be deleted")
        await self.store.delete_role(role_id)
        await self.store.record_audit(actor_id, "role.delete", "role", str(role_id), {"name": role.name})
        await self.store.commit()
        return True

    # ---- users ----
    async def list_users(self):
        return await self.store.list_users()

    async def create_user(self, payload: UserCreate, actor_id: uuid.UUID | None = None) -> User:
        user = await self.store.save_user(User(**payload.model_dump()))
        await self.store.record_audit(actor_id, "user.create", "user", str(user.id), {"email": user.email, "role": user.role})
        await self.store.commit()
        return user

    async def set_custom_permissions(self, user_id: uuid.UUID, permissions: list[str] | None,
                                     actor_id: uuid.UUID | None = None) -> User | None:
        user = await self.store.get_user(user_id)
        if not user:
            return None
        user.custom_permissions = None if permissions is None else sorted(set(permissions))
        await self.store.save_user(user)
        await self.store.record_audit(actor_id, "user.custom_permissions", "user", str(user.id),
                                      {"permissions": user.custom_permissions})
        await self.store.commit()
        return user
