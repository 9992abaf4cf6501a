from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer
from ticketdesk.core.base import Base, TimestampedMixin

class Category(Base, TimestampedMixin):
    issue_type: Mapped[str] = mapped_column(String(16))  # Complaint | Request | Information
    l1: Mapped[str] = mapped_column(String(120))
    l2: Mapped[str] = mapped_column(String(120))
    l3: Mapped[str] = mapped_column(String(120))
    l4: Mapped[str | None] = mapped_column(String(120), nullable=True)
    path: Mapped[str] = mapped_column(String(512), unique=True)  # "L1 > L2 > L3 > L4"
    department_type: Mapped[str] = mapped_column(String(32), default="All")
    issue_priority_points: Mapped[int] = mapped_column(Integer, default=10)

class Vendor(Base, TimestampedMixin):
    handle: Mapped[str] = mapped_column(String(120), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    gmv_tier: Mapped[str | None] = mapped_column(String(16), nullable=True)  # Platinum, Gold, Silver, Bronze or XL, L, M, S
