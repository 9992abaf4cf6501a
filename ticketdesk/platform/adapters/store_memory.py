import logging
import uuid
from datetime import datetime, timezone
from typing import Sequence

from ticketdesk.modules.access.models import (
    User, Role, Page, Feature,
    RolePageAccess, RoleFeatureAccess, UserPageAccess, UserFeatureAccess,
)
from ticketdesk.modules.catalog.models import Category, Vendor
from ticketdesk.modules.fields.models import FieldConfiguration, CategoryFieldOverride
from ticketdesk.modules.routing.models import RoutingRule
from ticketdesk.modules.tickets.models import Ticket, SlaPolicy, OPEN_STATUSES
from ticketdesk.modules.audit.models import AuditEvent
from ticketdesk.platform.ports.rule_store import RuleStorePort, Scope

log = logging.getLogger("store.memory")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _stamp(obj):
    """Fill the values the database would have filled on INSERT."""
    for col in obj.__table__.columns:
        if getattr(obj, col.key, None) is not None or col.default is None:
            continue
        if col.default.is_scalar:
            setattr(obj, col.key, col.default.arg)
        elif col.default.is_callable:
            setattr(obj, col.key, col.default.arg(None))
    if obj.created_at is None:
        obj.created_at = _now()
    obj.updated_at = _now()
    return obj


class MemoryRuleStore(RuleStorePort):
    """Process-local store for local development and tests. Not shared between workers."""

    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}
        self.roles: dict[uuid.UUID, Role] = {}
        self.pages: dict[str, Page] = {}
        self.features: dict[tuple[str, str], Feature] = {}
        self.page_access: dict[tuple[str, uuid.UUID, str], RolePageAccess | UserPageAccess] = {}
        self.feature_access: dict[tuple[str, uuid.UUID, str, str], RoleFeatureAccess | UserFeatureAccess] = {}
        self.field_configs: dict[str, FieldConfiguration] = {}
        self.field_overrides: dict[tuple[uuid.UUID, str], CategoryFieldOverride] = {}
        self.categories: dict[uuid.UUID, Category] = {}
        self.vendors: dict[str, Vendor] = {}
        self.rules: dict[uuid.UUID, RoutingRule] = {}
        self.sla_policies: list[SlaPolicy] = []
        self.tickets: dict[uuid.UUID, Ticket] = {}
        self.audit: list[AuditEvent] = []
        self.commits = 0
        self.rollbacks = 0

    # ---- users & roles ----
    async def get_user(self, user_id: uuid.UUID) -> User | None:
        user = self.users.get(user_id)
        return user if user and user.deleted_at is None else None

    async def list_users(self) -> Sequence[User]:
        return sorted((u for u in self.users.values() if u.deleted_at is None), key=lambda u: u.name)

    async def save_user(self, user: User) -> User:
        _stamp(user)
        self.users[user.id] = user
        return user

    async def get_active_agents(self, department: str) -> Sequence[User]:
        agents = [
            u for u in self.users.values()
            if u.role == "Agent" and u.department == department and u.is_active and u.deleted_at is None
        ]
        return sorted(agents, key=lambda u: u.id)

    async def get_role(self, role_id: uuid.UUID) -> Role | None:
        role = self.roles.get(role_id)
        return role if role and role.deleted_at is None else None

    async def get_role_by_name(self, name: str) -> Role | None:
        for role in self.roles.values():
            if role.name == name and role.deleted_at is None:
                return role
        return None

    async def get_roles_by_user(self, user: User) -> Sequence[Role]:
        out = []
        for name in dict.fromkeys([user.role, *(user.roles or [])]):
            role = await self.get_role_by_name(name)
            if role:
                out.append(role)
        return out

    async def list_roles(self) -> Sequence[Role]:
        return sorted((r for r in self.roles.values() if r.deleted_at is None), key=lambda r: r.name)

    async def save_role(self, role: Role) -> Role:
        _stamp(role)
        self.roles[role.id] = role
        return role

    async def delete_role(self, role_id: uuid.UUID) -> bool:
        role = await self.get_role(role_id)
        if not role:
            return False
        role.deleted_at = _now()
        self.page_access = {k: v for k, v in self.page_access.items() if not (k[0] == "role" and k[1] == role_id)}
        self.feature_access = {k: v for k, v in self.feature_access.items() if not (k[0] == "role" and k[1] == role_id)}
        return True

    # ---- pages & features ----
    async def list_pages(self) -> Sequence[Page]:
        return [self.pages[k] for k in sorted(self.pages)]

    async def get_page(self, page_key: str) -> Page | None:
        return self.pages.get(page_key)

    async def save_page(self, page: Page) -> Page:
        _stamp(page)
        self.pages[page.page_key] = page
        return page

    async def list_features(self, page_key: str | None = None) -> Sequence[Feature]:
        return [
            self.features[k] for k in sorted(self.features)
            if page_key is None or k[0] == page_key
        ]

    async def get_feature(self, page_key: str, feature_key: str) -> Feature | None:
        return self.features.get((page_key, feature_key))

    async def save_feature(self, feature: Feature) -> Feature:
        _stamp(feature)
        self.features[(feature.page_key, feature.feature_key)] = feature
        return feature

    # ---- access overrides ----
    async def get_page_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[str, bool]:
        return {
            k[2]: row.is_enabled for k, row in self.page_access.items()
            if k[0] == scope and k[1] == key
        }

    async def get_feature_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[tuple[str, str], bool]:
        return {
            (k[2], k[3]): row.is_enabled for k, row in self.feature_access.items()
            if k[0] == scope and k[1] == key
        }

    async def set_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None:
        if scope == "role":
            row = RolePageAccess(role_id=key, page_key=page_key, is_enabled=enabled)
        else:
            row = UserPageAccess(user_id=key, page_key=page_key, is_enabled=enabled, reason=reason, set_by=set_by)
        self.page_access[(scope, key, page_key)] = _stamp(row)

    async def set_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None:
        if scope == "role":
            row = RoleFeatureAccess(role_id=key, page_key=page_key, feature_key=feature_key, is_enabled=enabled)
        else:
            row = UserFeatureAccess(user_id=key, page_key=page_key, feature_key=feature_key, is_enabled=enabled, reason=reason, set_by=set_by)
        self.feature_access[(scope, key, page_key, feature_key)] = _stamp(row)

    async def delete_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str) -> bool:
        return self.page_access.pop((scope, key, page_key), None) is not None

    async def delete_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str) -> bool:
        return self.feature_access.pop((scope, key, page_key, feature_key), None) is not None

    # ---- ticket fields ----
    async def get_field_configurations(self) -> Sequence[FieldConfiguration]:
        return sorted(self.field_configs.values(), key=lambda f: (f.display_order, f.field_name))

    async def save_field_configuration(self, config: FieldConfiguration) -> FieldConfiguration:
        _stamp(config)
        self.field_configs[config.field_name] = config
        return config

    async def get_category_field_overrides(self, category_id: uuid.UUID) -> dict[str, CategoryFieldOverride]:
        return {k[1]: row for k, row in self.field_overrides.items() if k[0] == category_id}

    async def set_category_field_override(self, category_id: uuid.UUID, field_name: str, visibility_override: str | None, required_override: bool | None) -> CategoryFieldOverride:
        row = CategoryFieldOverride(
            category_id=category_id,
            field_name=field_name,
            visibility_override=visibility_override,
            required_override=required_override,
        )
        self.field_overrides[(category_id, field_name)] = _stamp(row)
        return row

    async def delete_category_field_override(self, category_id: uuid.UUID, field_name: str) -> bool:
        return self.field_overrides.pop((category_id, field_name), None) is not None

    # ---- catalog ----
    async def get_category(self, category_id: uuid.UUID) -> Category | None:
        category = self.categories.get(category_id)
        return category if category and category.deleted_at is None else None

    async def list_categories(self) -> Sequence[Category]:
        return sorted((c for c in self.categories.values() if c.deleted_at is None), key=lambda c: c.path)

    async def save_category(self, category: Category) -> Category:
        _stamp(category)
        self.categories[category.id] = category
        return category

    async def delete_category(self, category_id: uuid.UUID) -> bool:
        category = await self.get_category(category_id)
        if not category:
            return False
        category.deleted_at = _now()
        return True

    async def get_vendor(self, handle: str) -> Vendor | None:
        return self.vendors.get(handle)

    async def save_vendor(self, vendor: Vendor) -> Vendor:
        _stamp(vendor)
        self.vendors[vendor.handle] = vendor
        return vendor

    # ---- routing & sla ----
    async def get_routing_rule(self, category_id: uuid.UUID) -> RoutingRule | None:
        for rule in self.rules.values():
            if rule.category_id == category_id and rule.is_active:
                return rule
        return None

    async def get_routing_rule_by_id(self, rule_id: uuid.UUID) -> RoutingRule | None:
        return self.rules.get(rule_id)

    async def list_routing_rules(self) -> Sequence[RoutingRule]:
        return sorted(self.rules.values(), key=lambda r: r.created_at)

    async def save_routing_rule(self, rule: RoutingRule) -> RoutingRule:
        _stamp(rule)
        self.rules = {k: r for k, r in self.rules.items() if r.category_id != rule.category_id or k == rule.id}
        self.rules[rule.id] = rule
        return rule

    async def delete_routing_rule(self, rule_id: uuid.UUID) -> bool:
        return self.rules.pop(rule_id, None) is not None

    async def get_sla_policies(self) -> Sequence[SlaPolicy]:
        return list(self.sla_policies)

    async def save_sla_policy(self, policy: SlaPolicy) -> SlaPolicy:
        _stamp(policy)
        self.sla_policies.append(policy)
        return policy

    # ---- tickets ----
    async def get_open_ticket_count_by_vendor(self, vendor_handle: str) -> int:
        return sum(1 for t in self.tickets.values() if t.vendor_handle == vendor_handle and t.status in OPEN_STATUSES)

    async def get_open_ticket_count_by_agent(self, agent_id: uuid.UUID) -> int:
        return sum(1 for t in self.tickets.values() if t.assignee_id == agent_id and t.status in OPEN_STATUSES)

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        _stamp(ticket)
        self.tickets[ticket.id] = ticket
        return ticket

    async def get_ticket(self, ticket_id: uuid.UUID) -> Ticket | None:
        return self.tickets.get(ticket_id)

    async def list_tickets(self, *, status: str | None = None, department: str | None = None, assignee_id: uuid.UUID | None = None, limit: int = 50, offset: int = 0) -> Sequence[Ticket]:
        rows = [
            t for t in self.tickets.values()
            if (not status or t.status == status)
            and (not department or t.department == department)
            and (not assignee_id or t.assignee_id == assignee_id)
        ]
        rows.sort(key=lambda t: t.created_at, reverse=True)
        return rows[offset:offset + limit]

    async def save_ticket(self, ticket: Ticket) -> Ticket:
        ticket.updated_at = _now()
        self.tickets[ticket.id] = ticket
        return ticket

    # ---- audit ----
    async def record_audit(self, actor_user_id: uuid.UUID | None, action: str, resource_type: str, resource_id: str, detail: dict | None = None) -> AuditEvent:
        ev = _stamp(AuditEvent(
            actor_user_id=actor_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            detail=detail,
            occurred_at=_now(),
        ))
        self.audit.append(ev)
        return ev

    async def list_audit(self, limit: int = 50) -> Sequence[AuditEvent]:
        return list(reversed(self.audit))[:limit]

    # ---- unit of work ----
    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        # writes land immediately, nothing to undo
        self.rollbacks += 1
        log.debug("[MEMORY STORE] rollback does not undo writes")
