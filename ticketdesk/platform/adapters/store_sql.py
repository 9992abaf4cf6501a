import functools
import logging
import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.exc import DBAPIError, OperationalError, InterfaceError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.errors import StoreUnavailable
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

log = logging.getLogger("store.sql")

_UNAVAILABLE = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


def _unavailable(e: Exception) -> bool:
    # constraint violations are DBAPIErrors too; only a dropped connection counts as an outage
    if isinstance(e, _UNAVAILABLE):
        return True
    return isinstance(e, DBAPIError) and e.connection_invalidated


_PAGE_ACCESS = {"role": RolePageAccess, "user": UserPageAccess}
_FEATURE_ACCESS = {"role": RoleFeatureAccess, "user": UserFeatureAccess}


def _guarded(fn):
    @functools.wraps(fn)
    async def wrapper(self, *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except (DBAPIError, PoolTimeoutError, OSError) as e:
            if not _unavailable(e):
                raise
            log.error(f"[SQL STORE] {fn.__name__} failed: {e}")
            raise StoreUnavailable(f"rule store unavailable during {fn.__name__}") from e
    return wrapper


def _owner(model, scope: Scope):
    return model.role_id if scope == "role" else model.user_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlRuleStore(RuleStorePort):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    # ---- users & roles ----
    @_guarded
    async def get_user(self, user_id: uuid.UUID) -> User | None:
        res = await self.session.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def list_users(self) -> Sequence[User]:
        res = await self.session.execute(select(User).where(User.deleted_at.is_(None)).order_by(User.name))
        return res.scalars().all()

    @_guarded
    async def save_user(self, user: User) -> User:
        return await self._add(user)

    @_guarded
    async def get_active_agents(self, department: str) -> Sequence[User]:
        q = select(User).where(
            User.role == "Agent",
            User.department == department,
            User.is_active.is_(True),
            User.deleted_at.is_(None),
        ).order_by(User.id)
        res = await self.session.execute(q)
        return res.scalars().all()

    @_guarded
    async def get_role(self, role_id: uuid.UUID) -> Role | None:
        res = await self.session.execute(select(Role).where(Role.id == role_id, Role.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def get_role_by_name(self, name: str) -> Role | None:
        res = await self.session.execute(select(Role).where(Role.name == name, Role.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def get_roles_by_user(self, user: User) -> Sequence[Role]:
        names = list(dict.fromkeys([user.role, *(user.roles or [])]))
        res = await self.session.execute(select(Role).where(Role.name.in_(names), Role.deleted_at.is_(None)))
        by_name = {r.name: r for r in res.scalars().all()}
        return [by_name[n] for n in names if n in by_name]

    @_guarded
    async def list_roles(self) -> Sequence[Role]:
        res = await self.session.execute(select(Role).where(Role.deleted_at.is_(None)).order_by(Role.name))
        return res.scalars().all()

    @_guarded
    async def save_role(self, role: Role) -> Role:
        return await self._add(role)

    @_guarded
    async def delete_role(self, role_id: uuid.UUID) -> bool:
        role = await self.get_role(role_id)
        if not role:
            return False
        role.deleted_at = _now()
        # overrides keyed by a deleted role are meaningless
        await self.session.execute(delete(RolePageAccess).where(RolePageAccess.role_id == role_id))
        await self.session.execute(delete(RoleFeatureAccess).where(RoleFeatureAccess.role_id == role_id))
        await self.session.flush()
        return True

    # ---- pages & features ----
    @_guarded
    async def list_pages(self) -> Sequence[Page]:
        res = await self.session.execute(select(Page).where(Page.deleted_at.is_(None)).order_by(Page.page_key))
        return res.scalars().all()

    @_guarded
    async def get_page(self, page_key: str) -> Page | None:
        res = await self.session.execute(select(Page).where(Page.page_key == page_key, Page.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def save_page(self, page: Page) -> Page:
        return await self._add(page)

    @_guarded
    async def list_features(self, page_key: str | None = None) -> Sequence[Feature]:
        q = select(Feature).where(Feature.deleted_at.is_(None))
        if page_key:
            q = q.where(Feature.page_key == page_key)
        res = await self.session.execute(q.order_by(Feature.page_key, Feature.feature_key))
        return res.scalars().all()

    @_guarded
    async def get_feature(self, page_key: str, feature_key: str) -> Feature | None:
        res = await self.session.execute(select(Feature).where(
            Feature.page_key == page_key,
            Feature.feature_key == feature_key,
            Feature.deleted_at.is_(None),
        ))
        return res.scalar_one_or_none()

    @_guarded
    async def save_feature(self, feature: Feature) -> Feature:
        return await self._add(feature)

    # ---- access overrides ----
    @_guarded
    async def get_page_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[str, bool]:
        model = _PAGE_ACCESS[scope]
        res = await self.session.execute(select(model).where(_owner(model, scope) == key))
        return {row.page_key: row.is_enabled for row in res.scalars().all()}

    @_guarded
    async def get_feature_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[tuple[str, str], bool]:
        model = _FEATURE_ACCESS[scope]
        res = await self.session.execute(select(model).where(_owner(model, scope) == key))
        return {(row.page_key, row.feature_key): row.is_enabled for row in res.scalars().all()}

    @_guarded
    async def set_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None:
        model = _PAGE_ACCESS[scope]
        res = await self.session.execute(select(model).where(_owner(model, scope) == key, model.page_key == page_key))
        row = res.scalar_one_or_none()
        if row is None:
            row = model(page_key=page_key, is_enabled=enabled)
            setattr(row, "role_id" if scope == "role" else "user_id", key)
            self.session.add(row)
        row.is_enabled = enabled
        if scope == "user":
            row.reason = reason
            row.set_by = set_by
        await self.session.flush()

    @_guarded
    async def set_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None:
        model = _FEATURE_ACCESS[scope]
        res = await self.session.execute(select(model).where(
            _owner(model, scope) == key,
            model.page_key == page_key,
            model.feature_key == feature_key,
        ))
        row = res.scalar_one_or_none()
        if row is None:
            row = model(page_key=page_key, feature_key=feature_key, is_enabled=enabled)
            setattr(row, "role_id" if scope == "role" else "user_id", key)
            self.session.add(row)
        row.is_enabled = enabled
        if scope == "user":
            row.reason = reason
            row.set_by = set_by
        await self.session.flush()

    @_guarded
    async def delete_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str) -> bool:
        model = _PAGE_ACCESS[scope]
        res = await self.session.execute(delete(model).where(_owner(model, scope) == key, model.page_key == page_key))
        return (res.rowcount or 0) > 0

    @_guarded
    async def delete_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str) -> bool:
        model = _FEATURE_ACCESS[scope]
        res = await self.session.execute(delete(model).where(
            _owner(model, scope) == key,
            model.page_key == page_key,
            model.feature_key == feature_key,
        ))
        return (res.rowcount or 0) > 0

    # ---- ticket fields ----
    @_guarded
    async def get_field_configurations(self) -> Sequence[FieldConfiguration]:
        q = select(FieldConfiguration).where(FieldConfiguration.deleted_at.is_(None)).order_by(
            FieldConfiguration.display_order, FieldConfiguration.field_name
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    @_guarded
    async def save_field_configuration(self, config: FieldConfiguration) -> FieldConfiguration:
        return await self._add(config)

    @_guarded
    async def get_category_field_overrides(self, category_id: uuid.UUID) -> dict[str, CategoryFieldOverride]:
        res = await self.session.execute(select(CategoryFieldOverride).where(CategoryFieldOverride.category_id == category_id))
        return {row.field_name: row for row in res.scalars().all()}

    @_guarded
    async def set_category_field_override(self, category_id: uuid.UUID, field_name: str, visibility_override: str | None, required_override: bool | None) -> CategoryFieldOverride:
        res = await self.session.execute(select(CategoryFieldOverride).where(
            CategoryFieldOverride.category_id == category_id,
            CategoryFieldOverride.field_name == field_name,
        ))
        row = res.scalar_one_or_none()
        if row is None:
            row = CategoryFieldOverride(category_id=category_id, field_name=field_name)
            self.session.add(row)
        row.visibility_override = visibility_override
        row.required_override = required_override
        await self.session.flush()
        return row

    @_guarded
    async def delete_category_field_override(self, category_id: uuid.UUID, field_name: str) -> bool:
        res = await self.session.execute(delete(CategoryFieldOverride).where(
            CategoryFieldOverride.category_id == category_id,
            CategoryFieldOverride.field_name == field_name,
        ))
        return (res.rowcount or 0) > 0

    # ---- catalog ----
    @_guarded
    async def get_category(self, category_id: uuid.UUID) -> Category | None:
        res = await self.session.execute(select(Category).where(Category.id == category_id, Category.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def list_categories(self) -> Sequence[Category]:
        res = await self.session.execute(select(Category).where(Category.deleted_at.is_(None)).order_by(Category.path))
        return res.scalars().all()

    @_guarded
    async def save_category(self, category: Category) -> Category:
        return await self._add(category)

    @_guarded
    async def delete_category(self, category_id: uuid.UUID) -> bool:
        category = await self.get_category(category_id)
        if not category:
            return False
        category.deleted_at = _now()
        await self.session.flush()
        return True

    @_guarded
    async def get_vendor(self, handle: str) -> Vendor | None:
        res = await self.session.execute(select(Vendor).where(Vendor.handle == handle, Vendor.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def save_vendor(self, vendor: Vendor) -> Vendor:
        return await self._add(vendor)

    # ---- routing & sla ----
    @_guarded
    async def get_routing_rule(self, category_id: uuid.UUID) -> RoutingRule | None:
        res = await self.session.execute(select(RoutingRule).where(
            RoutingRule.category_id == category_id,
            RoutingRule.is_active.is_(True),
            RoutingRule.deleted_at.is_(None),
        ))
        return res.scalar_one_or_none()

    @_guarded
    async def get_routing_rule_by_id(self, rule_id: uuid.UUID) -> RoutingRule | None:
        res = await self.session.execute(select(RoutingRule).where(RoutingRule.id == rule_id, RoutingRule.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def list_routing_rules(self) -> Sequence[RoutingRule]:
        res = await self.session.execute(select(RoutingRule).where(RoutingRule.deleted_at.is_(None)).order_by(RoutingRule.created_at))
        return res.scalars().all()

    @_guarded
    async def save_routing_rule(self, rule: RoutingRule) -> RoutingRule:
        # replace whatever rule the category had before; category_id is unique
        q = delete(RoutingRule).where(RoutingRule.category_id == rule.category_id)
        if rule.id is not None:
            q = q.where(RoutingRule.id != rule.id)
        await self.session.execute(q)
        return await self._add(rule)

    @_guarded
    async def delete_routing_rule(self, rule_id: uuid.UUID) -> bool:
        res = await self.session.execute(delete(RoutingRule).where(RoutingRule.id == rule_id))
        return (res.rowcount or 0) > 0

    @_guarded
    async def get_sla_policies(self) -> Sequence[SlaPolicy]:
        res = await self.session.execute(select(SlaPolicy).where(SlaPolicy.deleted_at.is_(None)))
        return res.scalars().all()

    @_guarded
    async def save_sla_policy(self, policy: SlaPolicy) -> SlaPolicy:
        return await self._add(policy)

    # ---- tickets ----
    @_guarded
    async def get_open_ticket_count_by_vendor(self, vendor_handle: str) -> int:
        q = select(func.count(Ticket.id)).where(
            Ticket.vendor_handle == vendor_handle,
            Ticket.status.in_(OPEN_STATUSES),
            Ticket.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return int(res.scalar_one() or 0)

    @_guarded
    async def get_open_ticket_count_by_agent(self, agent_id: uuid.UUID) -> int:
        q = select(func.count(Ticket.id)).where(
            Ticket.assignee_id == agent_id,
            Ticket.status.in_(OPEN_STATUSES),
            Ticket.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return int(res.scalar_one() or 0)

    @_guarded
    async def add_ticket(self, ticket: Ticket) -> Ticket:
        return await self._add(ticket)

    @_guarded
    async def get_ticket(self, ticket_id: uuid.UUID) -> Ticket | None:
        res = await self.session.execute(select(Ticket).where(Ticket.id == ticket_id, Ticket.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    @_guarded
    async def list_tickets(self, *, status: str | None = None, department: str | None = None, assignee_id: uuid.UUID | None = None, limit: int = 50, offset: int = 0) -> Sequence[Ticket]:
        conditions = [Ticket.deleted_at.is_(None)]
        if status:      conditions.append(Ticket.status == status)
        if department:  conditions.append(Ticket.department == department)
        if assignee_id: conditions.append(Ticket.assignee_id == assignee_id)
        q = select(Ticket).where(*conditions).order_by(Ticket.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    @_guarded
    async def save_ticket(self, ticket: Ticket) -> Ticket:
        return await self._add(ticket)

    # ---- audit ----
    @_guarded
    async def record_audit(self, actor_user_id: uuid.UUID | None, action: str, resource_type: str, resource_id: str, detail: dict | None = None) -> AuditEvent:
        ev = AuditEvent(
            actor_user_id=actor_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            detail=detail,
            occurred_at=_now(),
        )
        return await self._add(ev)

    @_guarded
    async def list_audit(self, limit: int = 50) -> Sequence[AuditEvent]:
        res = await self.session.execute(select(AuditEvent).order_by(AuditEvent.occurred_at.desc()).limit(limit))
        return res.scalars().all()

    # ---- unit of work ----
    @_guarded
    async def commit(self) -> None:
        await self.session.commit()

    @_guarded
    async def rollback(self) -> None:
        await self.session.rollback()
