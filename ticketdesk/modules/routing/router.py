import uuid
from fastapi import APIRouter, Depends, HTTPException
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import get_principal, require_scopes, Principal
from ticketdesk.modules.routing.schemas import (
    RoutingRuleIn, RoutingRuleOut, RoutingRequest, RoutingDecision, SlaPolicyIn, SlaPolicyOut,
)
from ticketdesk.modules.routing.service import RoutingEngine, RoutingRuleService
from ticketdesk.platform.ports.rule_store import RuleStorePort
from ticketdesk.platform.provider_registry import registry

router = APIRouter()

def svc(store: RuleStorePort = Depends(get_store)) -> RoutingRuleService:
    return RoutingRuleService(store)

def engine(store: RuleStorePort = Depends(get_store)) -> RoutingEngine:
    return RoutingEngine(store, registry.rotation_cursor())

# ---- Rules ----

@router.put("/routing/rules", response_model=RoutingRuleOut, dependencies=[Depends(require_scopes("routing:write"))])
async def save_rule(payload: RoutingRuleIn, principal: Principal = Depends(get_principal), service: RoutingRuleService = Depends(svc)):
    obj = await service.save_rule(payload, principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Category not found")
    return obj

@router.get("/routing/rules", response_model=list[RoutingRuleOut], dependencies=[Depends(require_scopes("routing:read"))])
async def list_rules(service: RoutingRuleService = Depends(svc)):
    return await service.list_rules()

@router.get("/routing/rules/{rule_id}", response_model=RoutingRuleOut, dependencies=[Depends(require_scopes("routing:read"))])
async def get_rule(rule_id: uuid.UUID, service: RoutingRuleService = Depends(svc)):
    obj = await service.get_rule(rule_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Routing rule not found")
    return obj

@router.delete("/routing/rules/{rule_id}", status_code=204, dependencies=[Depends(require_scopes("routing:write"))])
async def delete_rule(rule_id: uuid.UUID, principal: Principal = Depends(get_principal), service: RoutingRuleService = Depends(svc)):
    if not await service.delete_rule(rule_id, principal.user_id):
        raise HTTPException(status_code=404, detail="Routing rule not found")

# Dry run: what would happen to a ticket with these inputs. Advances the round-robin cursor.
@router.post("/routing/preview", response_model=RoutingDecision, dependencies=[Depends(require_scopes("routing:read"))])
async def preview(payload: RoutingRequest, service: RoutingEngine = Depends(engine)):
    return await service.route_ticket(payload)

# ---- SLA ----

@router.post("/sla/policies", response_model=SlaPolicyOut, status_code=201, dependencies=[Depends(require_scopes("sla:write"))])
async def create_sla_policy(payload: SlaPolicyIn, principal: Principal = Depends(get_principal), service: RoutingRuleService = Depends(svc)):
    return await service.create_sla_policy(payload, principal.user_id)

@router.get("/sla/policies", response_model=list[SlaPolicyOut], dependencies=[Depends(require_scopes("sla:read"))])
async def list_sla_policies(service: RoutingRuleService = Depends(svc)):
    return await service.list_sla_policies()
