import uuid
from datetime import datetime
from pydantic import BaseModel, Field

# ---- Tickets ----

class TicketCreate(BaseModel):
    subject: str | None = Field(default=None, max_length=255)
    description: str | None = None
    department: str | None = Field(default=None, max_length=64)
    issue_type: str | None = Field(default=None, pattern="^(Complaint|Request|Information)$")
    category_id: uuid.UUID | None = None
    vendor_handle: str | None = Field(default=None, max_length=120)
    department_type: str = Field(default="All", pattern="^(All|Customer Support|Seller Support)$")
    tags: list[str] | None = None
    custom_fields: dict | None = None

class TicketUpdate(BaseModel):
    subject: str | None = Field(default=None, max_length=255)
    description: str | None = None
    department: str | None = None
    issue_type: str | None = Field(default=None, pattern="^(Complaint|Request|Information)$")
    category_id: uuid.UUID | None = None
    vendor_handle: str | None = None
    custom_fields: dict | None = None
    assignee_id: uuid.UUID | None = None
    status: str | None = Field(default=None, pattern="^(New|Open|Pending|Solved|Closed)$")
    tags: list[str] | None = None
    sla_status: str | None = Field(default=None, pattern="^(on_track|at_risk|breached)$")

class StatusChange(BaseModel):
    status: str = Field(..., pattern="^(New|Open|Pending|Solved|Closed)$")

class AssignmentIn(BaseModel):
    assignee_id: uuid.UUID

class TicketOut(BaseModel):
    id: uuid.UUID
    ticket_number: str
    vendor_handle: str | None
    department: str
    issue_type: str
    category_id: uuid.UUID
    category_label: str | None = None
    subject: str
    description: str
    status: str
    priority_score: int
    priority_tier: str
    priority_badge: str
    priority_breakdown: dict | None
    assignee_id: uuid.UUID | None
    created_by_id: uuid.UUID | None
    routing_rule_id: uuid.UUID | None
    tags: list[str] | None
    custom_fields: dict | None
    sla_response_target: datetime | None
    sla_resolve_target: datetime | None
    sla_status: str
    resolved_at: datetime | None
    closed_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True
