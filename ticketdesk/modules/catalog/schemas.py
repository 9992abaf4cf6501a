import uuid
from pydantic import BaseModel, Field

class CategoryCreate(BaseModel):
    issue_type: str = Field(..., pattern="^(Complaint|Request|Information)$")
    l1: str = Field(..., min_length=1, max_length=120)
    l2: str = Field(..., min_length=1, max_length=120)
    l3: str = Field(..., min_length=1, max_length=120)
    l4: str | None = Field(default=None, max_length=120)
    department_type: str = Field(default="All", pattern="^(All|Customer Support|Seller Support)$")
    issue_priority_points: int = Field(default=10, ge=0, le=100)

class CategoryOut(CategoryCreate):
    id: uuid.UUID
    path: str

    class Config:
        from_attributes = True

class VendorCreate(BaseModel):
    handle: str = Field(..., min_length=1, max_length=120)
    name: str = Field(..., max_length=255)
    gmv_tier: str | None = Field(default=None, pattern="^(Platinum|Gold|Silver|Bronze|XL|L|M|S)$")

class VendorOut(VendorCreate):
    id: uuid.UUID

    class Config:
        from_attributes = True
