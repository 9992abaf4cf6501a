import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON, Boolean, UniqueConstraint
from ticketdesk.core.base import Base, TimestampedMixin

# ---- Permissions & Roles ----

class Permission(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(64), unique=True)  # e.g. edit:tickets
    category: Mapped[str] = mapped_column(String(32), default="general")
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)

class Role(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(64), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    permissions: Mapped[list] = mapped_column(JSON, default=list)  # ["view:tickets", "edit:tickets"]

class User(Base, TimestampedMixin):
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(120))
    role: Mapped[str] = mapped_column(String(64))  # primary role name
    roles: Mapped[list] = mapped_column(JSON, default=list)  # additional role names
    department: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sub_department: Mapped[str | None] = mapped_column(String(64), nullable=True)
    department_type: Mapped[str] = mapped_column(String(32), default="All")  # All | Customer Support | Seller Support
    # when not null this list replaces role-derived permissions entirely
    custom_permissions: Mapped[list | None] = mapped_column(JSON, nullable=True)
    manager_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ---- Pages & Features ----

class Page(Base, TimestampedMixin):
    page_key: Mapped[str] = mapped_column(String(64), unique=True)
    display_name: Mapped[str] = mapped_column(String(120))
    category: Mapped[str] = mapped_column(String(32), default="Core")
    default_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class Feature(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("page_key", "feature_key"),)

    page_key: Mapped[str] = mapped_column(String(64))
    feature_key: Mapped[str] = mapped_column(String(64))
    display_name: Mapped[str] = mapped_column(String(120))
    feature_type: Mapped[str] = mapped_column(String(16), default="crud")  # crud | export | ui_section | custom
    default_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ---- Overrides ----

class RolePageAccess(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("role_id", "page_key"),)

    role_id: Mapped[uuid.UUID] = mapped_column()
    page_key: Mapped[str] = mapped_column(String(64))
    is_enabled: Mapped[bool] = mapped_column(Boolean)

class RoleFeatureAccess(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("role_id", "page_key", "feature_key"),)

    role_id: Mapped[uuid.UUID] = mapped_column()
    page_key: Mapped[str] = mapped_column(String(64))
    feature_key: Mapped[str] = mapped_column(String(64))
    is_enabled: Mapped[bool] = mapped_column(Boolean)

class UserPageAccess(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("user_id", "page_key"),)

    user_id: Mapped[uuid.UUID] = mapped_column()
    page_key: Mapped[str] = mapped_column(String(64))
    is_enabled: Mapped[bool] = mapped_column(Boolean)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    set_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

class UserFeatureAccess(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("user_id", "page_key", "feature_key"),)

    user_id: Mapped[uuid.UUID] = mapped_column()
    page_key: Mapped[str] = mapped_column(String(64))
    feature_key: Mapped[str] = mapped_column(String(64))
    is_enabled: Mapped[bool] = mapped_column(Boolean)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    set_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
