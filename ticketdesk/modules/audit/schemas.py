import uuid
from datetime import datetime
from pydantic import BaseModel

class AuditEventOut(BaseModel):
    id: uuid.UUID
    actor_user_id: uuid.UUID | None
    action: str
    resource_type: str
    resource_id: str
    detail: dict | None
    occurred_at: datetime

    class Config:
        from_attributes = True
