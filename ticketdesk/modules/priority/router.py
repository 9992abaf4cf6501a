from fastapi import APIRouter, Depends
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import require_scopes
from ticketdesk.modules.priority.schemas import PriorityResult, PriorityScoreIn, TicketScoreIn
from ticketdesk.modules.priority.service import PriorityScorer, score, apply_boost
from ticketdesk.platform.ports.rule_store import RuleStorePort

router = APIRouter()

@router.post("/priority/score", response_model=PriorityResult, dependencies=[Depends(require_scopes("priority:read"))])
async def score_inputs(payload: PriorityScoreIn):
    return score(payload.gmv_tier, payload.open_ticket_count, payload.category_issue_points)

@router.post("/priority/score-ticket", response_model=PriorityResult, dependencies=[Depends(require_scopes("priority:read"))])
async def score_ticket(payload: TicketScoreIn, store: RuleStorePort = Depends(get_store)):
    category = await store.get_category(payload.category_id) if payload.category_id else None
    result = await PriorityScorer(store).score_ticket(payload.vendor_handle, category)
    return apply_boost(result, payload.boost)
