import uuid
from typing import Literal
from pydantic import BaseModel, Field

Tier = Literal["Critical", "High", "Medium", "Low"]
Badge = Literal["P0", "P1", "P2", "P3"]

class PriorityBreakdown(BaseModel):
    gmv_points: int
    ticket_history_points: int
    issue_points: int
    boost: int = 0

class PriorityResult(BaseModel):
    priority_score: int
    priority_tier: Tier
    priority_badge: Badge
    breakdown: PriorityBreakdown

class PriorityScoreIn(BaseModel):
    gmv_tier: str | None = None
    open_ticket_count: int = 0
    category_issue_points: int | None = None

class TicketScoreIn(BaseModel):
    vendor_handle: str | None = None
    category_id: uuid.UUID | None = None
    boost: int = Field(default=0, ge=-100, le=100)
