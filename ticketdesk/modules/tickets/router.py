import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import get_principal, require_scopes, Principal
from ticketdesk.modules.access.models import User
from ticketdesk.modules.tickets.schemas import TicketCreate, TicketUpdate, TicketOut, StatusChange, AssignmentIn
from ticketdesk.modules.tickets.service import TicketService
from ticketdesk.platform.ports.rule_store import RuleStorePort
from ticketdesk.platform.provider_registry import registry

router = APIRouter()

def svc(store: RuleStorePort = Depends(get_store)) -> TicketService:
    return TicketService(store, registry.rotation_cursor())

async def current_actor(principal: Principal = Depends(get_principal), store: RuleStorePort = Depends(get_store)) -> User:
    user = await store.get_user(principal.user_id)
    if user:
        return user
    # token holder without a user row: act with the roles the token carries
    return User(id=principal.user_id, role=principal.primary_role, roles=principal.roles, department=principal.department)

async def _out(service: TicketService, obj) -> TicketOut:
    return TicketOut.model_validate(obj).model_copy(update={"category_label": await service.category_label(obj)})

@router.post("/tickets", response_model=TicketOut, status_code=201, dependencies=[Depends(require_scopes("tickets:write"))])
async def create_ticket(
    payload: TicketCreate,
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(svc),
):
    obj = await service.create_ticket(payload, principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Category not found")
    return await _out(service, obj)

@router.get("/tickets/{ticket_id}", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:read"))])
async def get_ticket(
    ticket_id: uuid.UUID,
    actor: User = Depends(current_actor),
    service: TicketService = Depends(svc),
):
    obj = await service.get_ticket(ticket_id, actor)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return await _out(service, obj)

@router.get("/tickets", response_model=list[TicketOut], dependencies=[Depends(require_scopes("tickets:read"))])
async def list_tickets(
    status: str | None = Query(default=None, pattern="^(New|Open|Pending|Solved|Closed)$"),
    department: str | None = None,
    assignee_id: uuid.UUID | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: User = Depends(current_actor),
    service: TicketService = Depends(svc),
):
    rows = await service.list_tickets(actor, status=status, department=department, assignee_id=assignee_id, limit=limit, offset=offset)
    return [await _out(service, t) for t in rows]

@router.patch("/tickets/{ticket_id}", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:write"))])
async def update_ticket(
    ticket_id: uuid.UUID,
    payload: TicketUpdate,
    actor: User = Depends(current_actor),
    service: TicketService = Depends(svc),
):
    obj = await service.update_ticket(ticket_id, payload, actor)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket or assignee not found")
    return await _out(service, obj)

@router.post("/tickets/{ticket_id}/status", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:write"))])
async def change_status(
    ticket_id: uuid.UUID,
    payload: StatusChange,
    actor: User = Depends(current_actor),
    service: TicketService = Depends(svc),
):
    obj = await service.change_status(ticket_id, payload.status, actor)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return await _out(service, obj)

@router.post("/tickets/{ticket_id}/assign", response_model=TicketOut, dependencies=[Depends(require_scopes("tickets:write"))])
async def assign_ticket(
    ticket_id: uuid.UUID,
    payload: AssignmentIn,
    actor: User = Depends(current_actor),
    service: TicketService = Depends(svc),
):
    obj = await service.assign(ticket_id, payload.assignee_id, actor)
    if not obj:
        raise HTTPException(status_code=404, detail="Ticket or assignee not found")
    return await _out(service, obj)

@router.get("/tickets-access/me", dependencies=[Depends(require_scopes("tickets:read"))])
async def my_department_access(actor: User = Depends(current_actor), service: TicketService = Depends(svc)):
    return service.policy.department_access(actor)
