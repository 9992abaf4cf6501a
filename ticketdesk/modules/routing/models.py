import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, BigInteger
from ticketdesk.core.base import Base, TimestampedMixin

class RoutingRule(Base, TimestampedMixin):
    # one rule per category; the store replaces on save
    category_id: Mapped[uuid.UUID] = mapped_column(unique=True)
    target_department: Mapped[str] = mapped_column(String(64))
    auto_assign_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    assignment_strategy: Mapped[str] = mapped_column(String(16), default="round_robin")  # round_robin | least_loaded | specific_agent
    assigned_agent_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    priority_boost: Mapped[int] = mapped_column(Integer, default=0)
    sla_response_hours_override: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sla_resolution_hours_override: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class RoutingCursor(Base, TimestampedMixin):
    # round-robin position per rule; only ever advanced with a single UPDATE ... RETURNING
    rule_id: Mapped[uuid.UUID] = mapped_column(unique=True)
    position: Mapped[int] = mapped_column(BigInteger, default=0)
