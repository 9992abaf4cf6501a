import uuid
from typing import Literal
from pydantic import BaseModel, Field

Visibility = Literal["visible", "hidden"]

class ResolvedField(BaseModel):
    field_name: str
    field_label: str
    display_order: int
    effective_visibility: Visibility
    effective_required: bool
    is_core: bool = False

class FieldConfigurationIn(BaseModel):
    field_label: str = Field(..., max_length=120)
    is_enabled: bool = True
    is_required: bool = False
    display_order: int = 0
    department_type: str = Field(default="All", pattern="^(All|Customer Support|Seller Support)$")

class FieldConfigurationOut(FieldConfigurationIn):
    id: uuid.UUID
    field_name: str

    class Config:
        from_attributes = True

class CategoryFieldOverrideIn(BaseModel):
    visibility_override: Visibility | None = None
    required_override: bool | None = None

class CategoryFieldOverrideOut(CategoryFieldOverrideIn):
    category_id: uuid.UUID
    field_name: str

    class Config:
        from_attributes = True

class MissingFieldsCheck(BaseModel):
    department_type: str = "All"
    category_id: uuid.UUID | None = None
    values: dict = {}
