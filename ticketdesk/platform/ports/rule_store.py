"""
Read/write contract the policy engine uses to reach configuration and ticket data.

Adapters must raise ``StoreUnavailable`` when the backing store fails and must
return ``None`` / empty collections for missing configuration rather than raising.
"""
import uuid
from typing import Literal, Protocol, Sequence, runtime_checkable

from ticketdesk.modules.access.models import User, Role, Page, Feature
from ticketdesk.modules.catalog.models import Category, Vendor
from ticketdesk.modules.fields.models import FieldConfiguration, CategoryFieldOverride
from ticketdesk.modules.routing.models import RoutingRule
from ticketdesk.modules.tickets.models import Ticket, SlaPolicy
from ticketdesk.modules.audit.models import AuditEvent

Scope = Literal["role", "user"]


@runtime_checkable
class RuleStorePort(Protocol):
    # ---- users & roles ----
    async def get_user(self, user_id: uuid.UUID) -> User | None: ...
    async def list_users(self) -> Sequence[User]: ...
    async def save_user(self, user: User) -> User: ...
    async def get_active_agents(self, department: str) -> Sequence[User]: ...
    async def get_role(self, role_id: uuid.UUID) -> Role | None: ...
    async def get_role_by_name(self, name: str) -> Role | None: ...
    async def get_roles_by_user(self, user: User) -> Sequence[Role]: ...
    async def list_roles(self) -> Sequence[Role]: ...
    async def save_role(self, role: Role) -> Role: ...
    async def delete_role(self, role_id: uuid.UUID) -> bool: ...

    # ---- pages & features ----
    async def list_pages(self) -> Sequence[Page]: ...
    async def get_page(self, page_key: str) -> Page | None: ...
    async def save_page(self, page: Page) -> Page: ...
    async def list_features(self, page_key: str | None = None) -> Sequence[Feature]: ...
    async def get_feature(self, page_key: str, feature_key: str) -> Feature | None: ...
    async def save_feature(self, feature: Feature) -> Feature: ...

    # ---- access overrides ----
    async def get_page_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[str, bool]: ...
    async def get_feature_access_overrides(self, scope: Scope, key: uuid.UUID) -> dict[tuple[str, str], bool]: ...
    async def set_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None: ...
    async def set_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str, enabled: bool, *, reason: str | None = None, set_by: uuid.UUID | None = None) -> None: ...
    async def delete_page_access_override(self, scope: Scope, key: uuid.UUID, page_key: str) -> bool: ...
    async def delete_feature_access_override(self, scope: Scope, key: uuid.UUID, page_key: str, feature_key: str) -> bool: ...

    # ---- ticket fields ----
    async def get_field_configurations(self) -> Sequence[FieldConfiguration]: ...
    async def save_field_configuration(self, config: FieldConfiguration) -> FieldConfiguration: ...
    async def get_category_field_overrides(self, category_id: uuid.UUID) -> dict[str, CategoryFieldOverride]: ...
    async def set_category_field_override(self, category_id: uuid.UUID, field_name: str, visibility_override: str | None, required_override: bool | None) -> CategoryFieldOverride: ...
    async def delete_category_field_override(self, category_id: uuid.UUID, field_name: str) -> bool: ...

    # ---- catalog ----
    async def get_category(self, category_id: uuid.UUID) -> Category | None: ...
    async def list_categories(self) -> Sequence[Category]: ...
    async def save_category(self, category: Category) -> Category: ...
    async def delete_category(self, category_id: uuid.UUID) -> bool: ...
    async def get_vendor(self, handle: str) -> Vendor | None: ...
    async def save_vendor(self, vendor: Vendor) -> Vendor: ...

    # ---- routing & sla ----
    async def get_routing_rule(self, category_id: uuid.UUID) -> RoutingRule | None: ...
    async def get_routing_rule_by_id(self, rule_id: uuid.UUID) -> RoutingRule | None: ...
    async def list_routing_rules(self) -> Sequence[RoutingRule]: ...
    async def save_routing_rule(self, rule: RoutingRule) -> RoutingRule: ...
    async def delete_routing_rule(self, rule_id: uuid.UUID) -> bool: ...
    async def get_sla_policies(self) -> Sequence[SlaPolicy]: ...
    async def save_sla_policy(self, policy: SlaPolicy) -> SlaPolicy: ...

    # ---- tickets ----
    async def get_open_ticket_count_by_vendor(self, vendor_handle: str) -> int: ...
    async def get_open_ticket_count_by_agent(self, agent_id: uuid.UUID) -> int: ...
    async def add_ticket(self, ticket: Ticket) -> Ticket: ...
    async def get_ticket(self, ticket_id: uuid.UUID) -> Ticket | None: ...
    async def list_tickets(self, *, status: str | None = None, department: str | None = None, assignee_id: uuid.UUID | None = None, limit: int = 50, offset: int = 0) -> Sequence[Ticket]: ...
    async def save_ticket(self, ticket: Ticket) -> Ticket: ...

    # ---- audit ----
    async def record_audit(self, actor_user_id: uuid.UUID | None, action: str, resource_type: str, resource_id: str, detail: dict | None = None) -> AuditEvent: ...
    async def list_audit(self, limit: int = 50) -> Sequence[AuditEvent]: ...

    # ---- unit of work ----
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
