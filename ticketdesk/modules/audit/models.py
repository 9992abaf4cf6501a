import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, text, JSON
from ticketdesk.core.base import Base, TimestampedMixin

class AuditEvent(Base, TimestampedMixin):
    # who
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    # What happened
    action: Mapped[str] = mapped_column(String(48))  # override.set | override.clear | role.update | rule.save | ticket.create ...
    resource_type: Mapped[str] = mapped_column(String(48))  # role | user | page_access | feature_access | field_override | routing_rule | ticket
    resource_id: Mapped[str] = mapped_column(String(64))     # UUID as string (kept text for cross-resource), or "-"
    detail: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
