from fastapi import APIRouter, Depends, Query
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import require_scopes
from ticketdesk.modules.audit.schemas import AuditEventOut
from ticketdesk.platform.ports.rule_store import RuleStorePort

router = APIRouter()

@router.get("/audit", response_model=list[AuditEventOut], dependencies=[Depends(require_scopes("audit:read"))])
async def list_audit(
    store: RuleStorePort = Depends(get_store),
    limit: int = Query(50, ge=1, le=200),
):
    return await store.list_audit(limit)
