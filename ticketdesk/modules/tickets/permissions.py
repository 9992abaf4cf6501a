"""
Who may see and change a ticket.

- Owner/Admin and anyone in the CX department: every ticket, every field.
- Everyone else: only tickets of their own department, and only the
  triage fields in ``LIMITED_UPDATE_FIELDS``.
"""
from typing import Iterable

from ticketdesk.modules.access.models import User
from ticketdesk.modules.tickets.models import Ticket

ADMIN_ROLES = ("Owner", "Admin")
ALL_DEPARTMENTS = "CX"

LIMITED_UPDATE_FIELDS = ("assignee_id", "status", "tags", "sla_status")
RESTRICTED_FIELDS = (
    "subject", "description", "category_id", "issue_type", "department",
    "priority_score", "priority_tier", "vendor_handle", "custom_fields",
)


class TicketAccessPolicy:
    @staticmethod
    def sees_everything(user: User) -> bool:
        return user.role in ADMIN_ROLES or user.department == ALL_DEPARTMENTS

    def can_view_ticket(self, user: User, ticket: Ticket) -> bool:
        return self.sees_everything(user) or (user.department is not None and ticket.department == user.department)

    def can_edit_ticket_details(self, user: User, ticket: Ticket) -> bool:
        return self.sees_everything(user)

    def can_perform_limited_update(self, user: User, ticket: Ticket) -> bool:
        return self.can_view_ticket(user, ticket)

    def validate_ticket_update(self, user: User, ticket: Ticket, fields: Iterable[str]) -> str | None:
        """Return why the update is refused, or None when it is allowed."""
        if self.sees_everything(user):
            return None
        if not self.can_perform_limited_update(user, ticket):
            return f"Access denied. You can only update tickets in {user.department or 'your'} department."
        fields = list(fields)
        restricted = [f for f in fields if f in RESTRICTED_FIELDS]
        if restricted:
            return (
                f"Access denied. Non-CX users cannot edit: {', '.join(restricted)}. "
                f"You can only update: {', '.join(LIMITED_UPDATE_FIELDS)}."
            )
        unknown = [f for f in fields if f not in LIMITED_UPDATE_FIELDS]
        if unknown:
            return f"Unknown fields: {', '.join(unknown)}. Allowed fields for your role: {', '.join(LIMITED_UPDATE_FIELDS)}."
        return None

    def filter_tickets(self, user: User, tickets: Iterable[Ticket]) -> list[Ticket]:
        if self.sees_everything(user):
            return list(tickets)
        return [t for t in tickets if self.can_view_ticket(user, t)]

    def department_access(self, user: User) -> dict:
        everything = self.sees_everything(user)
        return {
            "can_view_all_departments": everything,
            "can_edit_all_tickets": everything,
            "departments": ["All"] if everything else [user.department or "None"],
        }
