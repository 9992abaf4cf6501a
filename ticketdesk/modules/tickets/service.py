import logging
import uuid
from datetime import datetime, timedelta, timezone

from ticketdesk.core.errors import InvalidStatusTransition, MissingRequiredFields, TicketAccessDenied
from ticketdesk.modules.access.models import User
from ticketdesk.modules.catalog.service import category_snapshot
from ticketdesk.modules.fields.service import CORE_FIELDS, FieldVisibilityResolver, is_blank
from ticketdesk.modules.priority.service import PriorityScorer
from ticketdesk.modules.routing.schemas import RoutingRequest
from ticketdesk.modules.routing.service import RoutingEngine
from ticketdesk.modules.tickets.models import Ticket
from ticketdesk.modules.tickets.permissions import TicketAccessPolicy
from ticketdesk.modules.tickets.schemas import TicketCreate, TicketUpdate
from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort
from ticketdesk.platform.ports.rule_store import RuleStorePort

logger = logging.getLogger(__name__)

VALID_NEXT = {
    "New": {"Open"},
    "Open": {"Pending", "Solved"},
    "Pending": {"Open", "Solved"},
    "Solved": {"Closed", "Open"},
    "Closed": set(),
}

UNKNOWN_CATEGORY = "Unknown Category (Deleted)"

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _ticket_number() -> str:
    return f"TKT-{uuid.uuid4().hex[:8].upper()}"


class TicketService:
    def __init__(self, store: RuleStorePort, cursor: RotationCursorPort):
        self.store = store
        self.fields = FieldVisibilityResolver(store)
        self.scorer = PriorityScorer(store)
        self.router = RoutingEngine(store, cursor)
        self.policy = TicketAccessPolicy()

    # ---- Intake ----
    async def create_ticket(self, payload: TicketCreate, actor_id: uuid.UUID | None = None) -> Ticket | None:
        category = await self.store.get_category(payload.category_id) if payload.category_id else None
        if payload.category_id and not category:
            return None

        values = {
            "subject": payload.subject,
            "description": payload.description,
            "department": payload.department,
            "issueType": payload.issue_type,
            "categoryId": payload.category_id,
            "vendorHandle": payload.vendor_handle,
            **(payload.custom_fields or {}),
        }
        await self.fields.validate_submission(payload.department_type, payload.category_id, values)
        # the ticket row cannot exist without these even if configuration made them optional
        core_missing = [name for name in CORE_FIELDS if is_blank(values.get(name))]
        if core_missing:
            raise MissingRequiredFields(core_missing)

        priority = await self.scorer.score_ticket(payload.vendor_handle, category)
        # taken before routing, which may roll the session back
        category_id, snapshot = category.id, category_snapshot(category)
        decision = await self.router.route_ticket(RoutingRequest(
            category_id=category_id, department=payload.department, priority=priority,
        ))

        created = _now()
        obj = Ticket(
            ticket_number=_ticket_number(),
            vendor_handle=payload.vendor_handle,
            department=decision.department,
            issue_type=payload.issue_type,
            category_id=category_id,
            category_snapshot=snapshot,
            subject=payload.subject,
            description=payload.description,
            status=decision.status,
            priority_score=decision.priority.priority_score,
            priority_tier=decision.priority.priority_tier,
            priority_badge=decision.priority.priority_badge,
            priority_breakdown=decision.priority.breakdown.model_dump(),
            assignee_id=decision.assignee_id,
            created_by_id=actor_id,
            routing_rule_id=decision.rule_id,
            tags=payload.tags,
            custom_fields=payload.custom_fields,
            sla_response_target=created + timedelta(hours=decision.sla_response_hours),
            sla_resolve_target=created + timedelta(hours=decision.sla_resolution_hours),
            created_at=created,
        )
        obj = await self.store.add_ticket(obj)
        await self.store.record_audit(actor_id, "ticket.create", "ticket", str(obj.id), {
            "ticket_number": obj.ticket_number,
            "department": obj.department,
            "assignee_id": str(obj.assignee_id) if obj.assignee_id else None,
            "priority": obj.priority_badge,
        })
        await self.store.commit()
        logger.info(f"created {obj.ticket_number} dept={obj.department} {obj.priority_badge} assignee={obj.assignee_id}")
        return obj

    # ---- Reads ----
    async def get_ticket(self, ticket_id: uuid.UUID, actor: User) -> Ticket | None:
        obj = await self.store.get_ticket(ticket_id)
        if obj and not self.policy.can_view_ticket(actor, obj):
            raise TicketAccessDenied("You can only view tickets in your department")
        return obj

    async def list_tickets(self, actor: User, **filters) -> list[Ticket]:
        if not self.policy.sees_everything(actor) and not filters.get("department"):
            filters["department"] = actor.department
        rows = await self.store.list_tickets(**filters)
        return self.policy.filter_tickets(actor, rows)

    async def category_label(self, ticket: Ticket) -> str:
        snap = ticket.category_snapshot or {}
        if snap.get("path"):
            return snap["path"]
        live = await self.store.get_category(ticket.category_id) if ticket.category_id else None
        return live.path if live else UNKNOWN_CATEGORY

    # ---- Lifecycle ----
    @staticmethod
    def check_transition(current: str, new_status: str, has_assignee: bool) -> None:
        if new_status == current:
            return
        if new_status not in VALID_NEXT.get(current, set()):
            raise InvalidStatusTransition(f"Cannot move ticket from {current} to {new_status}")
        if current == "New" and new_status == "Open" and not has_assignee:
            raise InvalidStatusTransition("A ticket needs an assignee before it can be opened")

    async def change_status(self, ticket_id: uuid.UUID, status: str, actor: User) -> Ticket | None:
        return await self.update_ticket(ticket_id, TicketUpdate(status=status), actor)

    async def assign(self, ticket_id: uuid.UUID, assignee_id: uuid.UUID, actor: User) -> Ticket | None:
        return await self.update_ticket(ticket_id, TicketUpdate(assignee_id=assignee_id), actor)

    async def update_ticket(self, ticket_id: uuid.UUID, payload: TicketUpdate, actor: User) -> Ticket | None:
        obj = await self.store.get_ticket(ticket_id)
        if not obj:
            return None
        updates = payload.model_dump(exclude_unset=True)
        denied = self.policy.validate_ticket_update(actor, obj, updates.keys())
        if denied:
            raise TicketAccessDenied(denied)

        before = obj.status
        status = updates.pop("status", None)
        assignee_id = updates.pop("assignee_id", obj.assignee_id)
        if "assignee_id" in payload.model_fields_set:
            if assignee_id and not await self.store.get_user(assignee_id):
                return None
            # picking someone up moves a fresh ticket into Open
            if assignee_id and obj.status == "New" and status is None:
                status = "Open"
        if status:
            self.check_transition(obj.status, status, bool(assignee_id))

        obj.assignee_id = assignee_id
        for k, v in updates.items():
            setattr(obj, k, v)
        if status and status != obj.status:
            if status == "Solved":
                obj.resolved_at = _now()
            elif status == "Closed":
                obj.closed_at = _now()
            elif obj.status == "Solved":
                obj.resolved_at = None
            obj.status = status

        await self.store.save_ticket(obj)
        await self.store.record_audit(actor.id, "ticket.update", "ticket", str(obj.id), {
            "fields": sorted(payload.model_fields_set),
            "from_status": before,
            "to_status": obj.status,
        })
        await self.store.commit()
        return obj
