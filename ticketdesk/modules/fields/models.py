import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, UniqueConstraint
from ticketdesk.core.base import Base, TimestampedMixin

class FieldConfiguration(Base, TimestampedMixin):
    field_name: Mapped[str] = mapped_column(String(64), unique=True)
    field_label: Mapped[str] = mapped_column(String(120))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    department_type: Mapped[str] = mapped_column(String(32), default="All")  # All | Customer Support | Seller Support

class CategoryFieldOverride(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("category_id", "field_name"),)

    category_id: Mapped[uuid.UUID] = mapped_column()
    field_name: Mapped[str] = mapped_column(String(64))
    visibility_override: Mapped[str | None] = mapped_column(String(16), nullable=True)  # visible | hidden | None
    required_override: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
