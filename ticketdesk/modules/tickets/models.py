import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, TIMESTAMP, JSON

from ticketdesk.core.base import Base, TimestampedMixin

OPEN_STATUSES = ("New", "Open", "Pending")

# ---- Tickets ----

class Ticket(Base, TimestampedMixin):
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True)
    vendor_handle: Mapped[str | None] = mapped_column(String(120), nullable=True)
    department: Mapped[str] = mapped_column(String(64))
    issue_type: Mapped[str] = mapped_column(String(16))  # Complaint | Request | Information
    category_id: Mapped[uuid.UUID] = mapped_column()
    # frozen copy of the category at creation: {category_id, issue_type, l1..l4, path, department_type, issue_priority_points}
    category_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    subject: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), default="New")  # New, Open, Pending, Solved, Closed

    priority_score: Mapped[int] = mapped_column(Integer)
    priority_tier: Mapped[str] = mapped_column(String(16))  # Critical | High | Medium | Low
    priority_badge: Mapped[str] = mapped_column(String(4))  # P0..P3
    priority_breakdown: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    assignee_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    routing_rule_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    custom_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    sla_response_target: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    sla_resolve_target: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    sla_status: Mapped[str] = mapped_column(String(16), default="on_track")  # on_track, at_risk, breached

    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

# ---- SLA ----

class SlaPolicy(Base, TimestampedMixin):
    department_filter: Mapped[str | None] = mapped_column(String(64), nullable=True)  # e.g., "Finance" or None
    priority_filter: Mapped[str | None] = mapped_column(String(16), nullable=True)    # e.g., "Critical" or None
    respond_within_hours: Mapped[int] = mapped_column(Integer)    # first response
    resolve_within_hours: Mapped[int] = mapped_column(Integer)    # final resolution
