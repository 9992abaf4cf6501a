"""
Priority scoring for new tickets.

score = gmv points + ticket history points + category issue points (+ routing boost)

  gmv points       Platinum or XL 40, Gold or L 30, Silver or M 20, anything else 10
  history points   5 per open ticket of the vendor, capped at 20
  issue points     category.issue_priority_points, 10 when there is no category

Tiers use inclusive lower bounds: 70 Critical/P0, 50 High/P1, 30 Medium/P2, else Low/P3.
"""
import logging

from ticketdesk.modules.catalog.models import Category
from ticketdesk.modules.priority.schemas import PriorityResult, PriorityBreakdown
from ticketdesk.platform.ports.rule_store import RuleStorePort

logger = logging.getLogger(__name__)

# vendors carry either the named tier or its size code
GMV_POINTS = {
    "Platinum": 40, "XL": 40,
    "Gold": 30, "L": 30,
    "Silver": 20, "M": 20,
    "Bronze": 10, "S": 10,
}
DEFAULT_GMV_POINTS = 10
POINTS_PER_OPEN_TICKET = 5
MAX_HISTORY_POINTS = 20
DEFAULT_ISSUE_POINTS = 10

# (lower bound, tier, badge), highest first
TIERS = (
    (70, "Critical", "P0"),
    (50, "High", "P1"),
    (30, "Medium", "P2"),
)
FLOOR_TIER = ("Low", "P3")

def tier_for(score: int) -> tuple[str, str]:
    for bound, tier, badge in TIERS:
        if score >= bound:
            return tier, badge
    return FLOOR_TIER

def score(gmv_tier: str | None, open_ticket_count: int, category_issue_points: int | None, boost: int = 0) -> PriorityResult:
    gmv = GMV_POINTS.get(gmv_tier or "", DEFAULT_GMV_POINTS)
    history = min(max(open_ticket_count, 0) * POINTS_PER_OPEN_TICKET, MAX_HISTORY_POINTS)
    issue = DEFAULT_ISSUE_POINTS if category_issue_points is None else category_issue_points
    total = gmv + history + issue + boost
    tier, badge = tier_for(total)
    return PriorityResult(
        priority_score=total,
        priority_tier=tier,
        priority_badge=badge,
        breakdown=PriorityBreakdown(gmv_points=gmv, ticket_history_points=history, issue_points=issue, boost=boost),
    )

def apply_boost(result: PriorityResult, boost: int) -> PriorityResult:
    """Add a routing boost to an existing score and re-tier it."""
    if not boost:
        return result
    bd = result.breakdown.model_copy(update={"boost": result.breakdown.boost + boost})
    total = result.priority_score + boost
    tier, badge = tier_for(total)
    return PriorityResult(priority_score=total, priority_tier=tier, priority_badge=badge, breakdown=bd)


class PriorityScorer:
    def __init__(self, store: RuleStorePort):
        self.store = store

    async def score_ticket(self, vendor_handle: str | None, category: Category | None) -> PriorityResult:
        gmv_tier = None
        open_count = 0
        if vendor_handle:
            vendor = await self.store.get_vendor(vendor_handle)
            gmv_tier = vendor.gmv_tier if vendor else None
            # snapshot at scoring time, concurrent submissions may not see each other
            open_count = await self.store.get_open_ticket_count_by_vendor(vendor_handle)
        result = score(gmv_tier, open_count, category.issue_priority_points if category else None)
        logger.debug(f"scored vendor={vendor_handle} gmv={gmv_tier} open={open_count} -> {result.priority_score}")
        return result
