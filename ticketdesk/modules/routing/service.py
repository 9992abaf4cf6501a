import logging
import uuid
from typing import Sequence

from ticketdesk.core.config import settings
from ticketdesk.core.errors import InvalidRoutingRule, StoreUnavailable
from ticketdesk.modules.priority.service import apply_boost
from ticketdesk.modules.routing.models import RoutingRule
from ticketdesk.modules.routing.schemas import RoutingRequest, RoutingDecision, RoutingRuleIn, SlaPolicyIn
from ticketdesk.modules.tickets.models import SlaPolicy
from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort
from ticketdesk.platform.ports.rule_store import RuleStorePort

logger = logging.getLogger(__name__)

STRATEGIES = ("round_robin", "least_loaded", "specific_agent")
MIN_BOOST, MAX_BOOST = -100, 100

def match_sla_policy(policies: Sequence[SlaPolicy], department: str, tier: str) -> SlaPolicy | None:
    """Most specific policy wins: department+tier, department, tier, then catch-all."""
    ranked = (
        lambda p: p.department_filter == department and p.priority_filter == tier,
        lambda p: p.department_filter == department and p.priority_filter is None,
        lambda p: p.department_filter is None and p.priority_filter == tier,
        lambda p: p.department_filter is None and p.priority_filter is None,
    )
    for matches in ranked:
        for p in policies:
            if p.deleted_at is None and matches(p):
                return p
    return None


class RoutingEngine:
    def __init__(self, store: RuleStorePort, cursor: RotationCursorPort):
        self.store = store
        self.cursor = cursor

    async def route_ticket(self, ticket: RoutingRequest) -> RoutingDecision:
        rule = await self.store.get_routing_rule(ticket.category_id) if ticket.category_id else None
        return await self.route(ticket, rule)

    async def route(self, ticket: RoutingRequest, rule: RoutingRule | None = None) -> RoutingDecision:
        if rule is None or not rule.is_active:
            response, resolution = await self._sla_hours(None, ticket.department, ticket.priority.priority_tier)
            return RoutingDecision(
                department=ticket.department,
                priority=ticket.priority,
                sla_response_hours=response,
                sla_resolution_hours=resolution,
            )

        priority = apply_boost(ticket.priority, rule.priority_boost or 0)
        department = rule.target_department
        # read before selection, a failed selection rolls the session back and expires the rule
        rule_id, strategy = rule.id, rule.assignment_strategy
        response, resolution = await self._sla_hours(rule, department, priority.priority_tier)
        assignee_id = await self._select_assignee(rule)

        decision = RoutingDecision(
            department=department,
            assignee_id=assignee_id,
            status="Open" if assignee_id else "New",
            priority=priority,
            sla_response_hours=response,
            sla_resolution_hours=resolution,
            rule_id=rule_id,
            strategy=strategy,
        )
        logger.info(
            f"routed category={ticket.category_id} -> dept={department} strategy={strategy} "
            f"assignee={assignee_id} score={priority.priority_score}"
        )
        return decision

    async def _sla_hours(self, rule: RoutingRule | None, department: str, tier: str) -> tuple[int, int]:
        policy = match_sla_policy(await self.store.get_sla_policies(), department, tier)
        response = policy.respond_within_hours if policy else settings.DEFAULT_SLA_RESPONSE_HOURS
        resolution = policy.resolve_within_hours if policy else settings.DEFAULT_SLA_RESOLUTION_HOURS
        if rule and rule.sla_response_hours_override:
            response = rule.sla_response_hours_override
        if rule and rule.sla_resolution_hours_override:
            resolution = rule.sla_resolution_hours_override
        return response, resolution

    # ---- assignment strategies ----
    async def _select_assignee(self, rule: RoutingRule) -> uuid.UUID | None:
        if not rule.auto_assign_enabled:
            return None
        pick = {
            "specific_agent": self._specific_agent,
            "round_robin": self._round_robin,
            "least_loaded": self._least_loaded,
        }.get(rule.assignment_strategy)
        if pick is None:
            logger.warning(f"rule {rule.id} has unknown strategy {rule.assignment_strategy!r}; leaving unassigned")
            return None
        try:
            return await pick(rule)
        except StoreUnavailable as e:
            # fail closed: ticket still gets created, just without an assignee
            logger.warning(f"assignee selection failed for rule {rule.id}: {e}")
            # a failed read leaves the session unusable for the ticket insert
            await self.store.rollback()
            return None

    async def _specific_agent(self, rule: RoutingRule) -> uuid.UUID | None:
        # validated as active when the rule was saved
        return rule.assigned_agent_id

    async def _round_robin(self, rule: RoutingRule) -> uuid.UUID | None:
        agents = await self.store.get_active_agents(rule.target_department)
        if not agents:
            logger.info(f"no active agents in {rule.target_department} for rule {rule.id}")
            return None
        position = await self.cursor.next_position(rule.id)
        return agents[position % len(agents)].id

    async def _least_loaded(self, rule: RoutingRule) -> uuid.UUID | None:
        agents = await self.store.get_active_agents(rule.target_department)
        if not agents:
            return None
        loads = []
        for agent in agents:
            loads.append((await self.store.get_open_ticket_count_by_agent(agent.id), agent.id))
        return min(loads)[1]


class RoutingRuleService:
    def __init__(self, store: RuleStorePort):
        self.store = store

    async def _validate(self, payload: RoutingRuleIn) -> None:
        if not payload.target_department.strip():
            raise InvalidRoutingRule("target_department must not be empty")
        if payload.assignment_strategy not in STRATEGIES:
            raise InvalidRoutingRule(f"unknown assignment strategy {payload.assignment_strategy!r}")
        if not MIN_BOOST <= payload.priority_boost <= MAX_BOOST:
            raise InvalidRoutingRule(f"priority_boost must be between {MIN_BOOST} and {MAX_BOOST}")
        for name in ("sla_response_hours_override", "sla_resolution_hours_override"):
            value = getattr(payload, name)
            if value is not None and value < 1:
                raise InvalidRoutingRule(f"{name} must be a positive number of hours")
        if payload.assignment_strategy == "specific_agent":
            if not payload.assigned_agent_id:
                raise InvalidRoutingRule("specific_agent strategy requires assigned_agent_id")
            agent = await self.store.get_user(payload.assigned_agent_id)
            if not agent or not agent.is_active:
                raise InvalidRoutingRule("assigned_agent_id must reference an active user")

    async def save_rule(self, payload: RoutingRuleIn, actor_id: uuid.UUID | None = None) -> RoutingRule | None:
        if not await self.store.get_category(payload.category_id):
            return None
        await self._validate(payload)

        # one rule per category: update in place so the round-robin cursor survives edits
        rule = next((r for r in await self.store.list_routing_rules() if r.category_id == payload.category_id), None)
        if rule is None:
            rule = RoutingRule(category_id=payload.category_id)
        for k, v in payload.model_dump().items():
            setattr(rule, k, v)
        if rule.assignment_strategy != "specific_agent":
            rule.assigned_agent_id = None
        rule = await self.store.save_routing_rule(rule)
        await self.store.record_audit(actor_id, "rule.save", "routing_rule", str(rule.id), payload.model_dump(mode="json"))
        await self.store.commit()
        return rule

    async def list_rules(self):
        return await self.store.list_routing_rules()

    async def get_rule(self, rule_id: uuid.UUID) -> RoutingRule | None:
        return await self.store.get_routing_rule_by_id(rule_id)

    async def delete_rule(self, rule_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> bool:
        removed = await self.store.delete_routing_rule(rule_id)
        if removed:
            await self.store.record_audit(actor_id, "rule.delete", "routing_rule", str(rule_id))
            await self.store.commit()
        return removed

    # ---- SLA ----
    async def create_sla_policy(self, payload: SlaPolicyIn, actor_id: uuid.UUID | None = None) -> SlaPolicy:
        policy = await self.store.save_sla_policy(SlaPolicy(**payload.model_dump()))
        await self.store.record_audit(actor_id, "sla.create", "sla_policy", str(policy.id), payload.model_dump())
        await self.store.commit()
        return policy

    async def list_sla_policies(self):
        return await self.store.get_sla_policies()
