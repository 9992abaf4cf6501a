import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

Source = Literal["user-override", "role-override", "default"]

# ---- Resolution ----

class AccessDecision(BaseModel):
    enabled: bool
    source: Source

class EffectiveAccess(BaseModel):
    user_id: uuid.UUID
    pages: dict[str, bool] = {}
    features: dict[str, dict[str, bool]] = {}

class EffectivePermissions(BaseModel):
    user_id: uuid.UUID
    permissions: list[str]
    source: Literal["custom", "roles"]

class PermissionCheck(BaseModel):
    permission: str
    granted: bool

# ---- Overrides ----

class AccessOverrideSet(BaseModel):
    enabled: bool
    reason: str | None = Field(default=None, max_length=255)

class CustomPermissionsSet(BaseModel):
    # null clears custom permissions and falls back to roles; [] denies everything
    permissions: list[str] | None

# ---- Roles ----

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    permissions: list[str] = []

class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = None
    permissions: list[str] | None = None

class RoleOut(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    is_system: bool
    permissions: list[str]

    class Config:
        from_attributes = True

# ---- Users ----

class UserCreate(BaseModel):
    email: str = Field(..., max_length=255)
    name: str = Field(..., max_length=120)
    role: str
    roles: list[str] = []
    department: str | None = None
    sub_department: str | None = None
    department_type: str = Field(default="All", pattern="^(All|Customer Support|Seller Support)$")
    manager_id: uuid.UUID | None = None
    is_active: bool = True

class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    roles: list[str]
    department: str | None
    sub_department: str | None
    department_type: str
    custom_permissions: list[str] | None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

# ---- Catalog of pages ----

class FeatureOut(BaseModel):
    page_key: str
    feature_key: str
    display_name: str
    feature_type: str
    default_enabled: bool
    is_active: bool

    class Config:
        from_attributes = True

class PageOut(BaseModel):
    page_key: str
    display_name: str
    category: str
    default_enabled: bool
    is_active: bool

    class Config:
        from_attributes = True
