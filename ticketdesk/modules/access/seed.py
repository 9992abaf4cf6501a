"""
Immutable seed table for roles, pages, features and ticket form fields.

Loaded into the rule store at startup (and by ``scripts/seed_policy_data.py``).
Runtime code never reads these constants directly; it asks the store.
"""
import logging
from types import MappingProxyType

from ticketdesk.modules.access.models import Role, Page, Feature
from ticketdesk.modules.fields.models import FieldConfiguration
from ticketdesk.platform.ports.rule_store import RuleStorePort

log = logging.getLogger(__name__)

ROLE_PERMISSIONS = MappingProxyType({
    "Owner": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets", "delete:tickets",
        "view:users", "create:users", "edit:users", "delete:users",
        "view:vendors", "create:vendors", "edit:vendors", "delete:vendors",
        "view:analytics", "view:config", "edit:config", "view:all_tickets",
    ),
    "Admin": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets", "delete:tickets",
        "view:users", "create:users", "edit:users",
        "view:vendors", "create:vendors", "edit:vendors",
        "view:analytics", "view:config", "edit:config", "view:all_tickets",
    ),
    "Head": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets",
        "view:users", "view:vendors", "view:analytics",
        "view:department_tickets", "view:department_users",
    ),
    "Manager": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets",
        "view:vendors", "view:department_tickets", "view:department_users",
    ),
    "Lead": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets",
        "view:vendors", "view:team_tickets",
    ),
    "Associate": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets",
        "view:assigned_tickets",
    ),
    "Agent": (
        "view:dashboard", "view:tickets", "create:tickets", "edit:tickets",
        "view:assigned_tickets", "view:department_tickets",
    ),
})

# (page_key, display_name, category, default_enabled)
DEFAULT_PAGES = (
    ("dashboard", "Dashboard", "Core", True),
    ("tickets", "All Tickets", "Tickets", True),
    ("my-tickets", "My Tickets", "Tickets", True),
    ("department-tickets", "Department Tickets", "Tickets", True),
    ("ticket-detail", "Ticket Detail", "Tickets", True),
    ("users", "Users", "Administration", False),
    ("vendors", "Vendors", "Business", True),
    ("analytics", "Analytics", "Reports", True),
    ("ticket-config", "Ticket Configuration", "Administration", False),
    ("routing-config", "Routing Configuration", "Administration", False),
    ("roles", "Roles Management", "Administration", False),
    ("org-hierarchy", "Organization Hierarchy", "Administration", False),
    ("profile", "Profile", "Core", True),
    ("notifications", "Notifications", "Core", True),
    ("product-requests", "Product Requests", "Business", False),
    ("attendance", "Attendance", "HR", True),
    ("attendance-checkin", "Attendance Check-in", "HR", True),
    ("attendance-team", "Team Attendance", "HR", False),
    ("leave-management", "Leave Management", "HR", True),
)

# (page_key, feature_key, display_name, feature_type, default_enabled)
DEFAULT_FEATURES = (
    ("tickets", "create", "Create Ticket", "crud", True),
    ("tickets", "read", "View Tickets", "crud", True),
    ("tickets", "update", "Edit Tickets", "crud", True),
    ("tickets", "delete", "Delete Tickets", "crud", False),
    ("tickets", "export", "Export Tickets", "export", True),
    ("tickets", "filters", "Advanced Filters", "ui_section", True),
    ("users", "create", "Create User", "crud", False),
    ("users", "read", "View Users", "crud", True),
    ("users", "update", "Edit Users", "crud", False),
    ("users", "delete", "Delete Users", "crud", False),
    ("users", "export", "Export Users", "export", False),
    ("analytics", "read", "View Analytics", "crud", True),
    ("analytics", "export", "Export Reports", "export", True),
    ("analytics", "advanced_metrics", "Advanced Metrics", "custom", False),
    ("attendance", "read", "View Attendance", "crud", True),
    ("attendance", "export", "Export Attendance", "export", False),
    ("attendance-checkin", "checkin", "Check In", "custom", True),
    ("attendance-checkin", "checkout", "Check Out", "custom", True),
    ("attendance-team", "read", "View Team", "crud", True),
    ("attendance-team", "export", "Export Team Data", "export", False),
)

# (field_name, field_label, department_type, is_required, display_order)
DEFAULT_FIELDS = (
    ("vendorHandle", "Vendor Handle", "Seller Support", True, 1),
    ("customer", "Customer", "Customer Support", True, 1),
    ("department", "Department", "All", True, 2),
    ("issueType", "Issue Type", "All", True, 3),
    ("categoryId", "Category", "All", True, 4),
    ("subject", "Subject", "All", True, 5),
    ("description", "Description", "All", True, 6),
    ("fleekOrderIds", "Fleek Order IDs", "All", False, 7),
    ("attachments", "Attachments", "All", False, 8),
)

DEPARTMENTS = ("Finance", "Operations", "Marketplace", "Tech", "Supply", "Growth", "Experience", "CX")


async def seed_rule_store(store: RuleStorePort) -> dict[str, int]:
    """Insert whatever part of the seed table is missing. Existing rows are left untouched."""
    created = {"roles": 0, "pages": 0, "features": 0, "fields": 0}

    for name, perms in ROLE_PERMISSIONS.items():
        if await store.get_role_by_name(name) is None:
            await store.save_role(Role(name=name, is_system=True, permissions=list(perms)))
            created["roles"] += 1

    for page_key, display_name, category, default_enabled in DEFAULT_PAGES:
        if await store.get_page(page_key) is None:
            await store.save_page(Page(
                page_key=page_key, display_name=display_name, category=category,
                default_enabled=default_enabled, is_active=True,
            ))
            created["pages"] += 1

    for page_key, feature_key, display_name, feature_type, default_enabled in DEFAULT_FEATURES:
        if await store.get_feature(page_key, feature_key) is None:
            await store.save_feature(Feature(
                page_key=page_key, feature_key=feature_key, display_name=display_name,
                feature_type=feature_type, default_enabled=default_enabled, is_active=True,
            ))
            created["features"] += 1

    existing = {f.field_name for f in await store.get_field_configurations()}
    for field_name, label, department_type, required, order in DEFAULT_FIELDS:
        if field_name not in existing:
            await store.save_field_configuration(FieldConfiguration(
                field_name=field_name, field_label=label, department_type=department_type,
                is_enabled=True, is_required=required, display_order=order,
            ))
            created["fields"] += 1

    await store.commit()
    log.info(f"Seeded rule store: {created}")
    return created
