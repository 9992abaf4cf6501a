import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

from ticketdesk.modules.priority.schemas import PriorityResult

Strategy = Literal["round_robin", "least_loaded", "specific_agent"]

# ---- Rules ----

class RoutingRuleIn(BaseModel):
    category_id: uuid.UUID
    target_department: str = Field(..., max_length=64)
    auto_assign_enabled: bool = False
    assignment_strategy: Strategy = "round_robin"
    assigned_agent_id: uuid.UUID | None = None
    priority_boost: int = 0
    sla_response_hours_override: int | None = None
    sla_resolution_hours_override: int | None = None
    is_active: bool = True

class RoutingRuleOut(RoutingRuleIn):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime | None

    class Config:
        from_attributes = True

# ---- Decisions ----

class RoutingRequest(BaseModel):
    category_id: uuid.UUID | None = None
    department: str
    priority: PriorityResult

class RoutingDecision(BaseModel):
    department: str
    assignee_id: uuid.UUID | None = None
    status: Literal["New", "Open"] = "New"
    priority: PriorityResult
    sla_response_hours: int
    sla_resolution_hours: int
    rule_id: uuid.UUID | None = None
    strategy: Strategy | None = None

# ---- SLA ----

class SlaPolicyIn(BaseModel):
    department_filter: str | None = None
    priority_filter: Literal["Critical", "High", "Medium", "Low"] | None = None
    respond_within_hours: int = Field(..., ge=1)
    resolve_within_hours: int = Field(..., ge=1)

class SlaPolicyOut(SlaPolicyIn):
    id: uuid.UUID

    class Config:
        from_attributes = True
