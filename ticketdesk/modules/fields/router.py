import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import get_principal, require_scopes, Principal
from ticketdesk.modules.fields.schemas import (
    ResolvedField, FieldConfigurationIn, FieldConfigurationOut,
    CategoryFieldOverrideIn, CategoryFieldOverrideOut, MissingFieldsCheck,
)
from ticketdesk.modules.fields.service import FieldVisibilityResolver
from ticketdesk.platform.ports.rule_store import RuleStorePort

router = APIRouter()

def svc(store: RuleStorePort = Depends(get_store)) -> FieldVisibilityResolver:
    return FieldVisibilityResolver(store)

@router.get("/fields/resolve", response_model=list[ResolvedField], dependencies=[Depends(require_scopes("fields:read"))])
async def resolve_fields(
    department_type: str = Query(default="All", pattern="^(All|Customer Support|Seller Support)$"),
    category_id: uuid.UUID | None = None,
    service: FieldVisibilityResolver = Depends(svc),
):
    return await service.resolve_fields(department_type, category_id)

@router.post("/fields/missing", response_model=list[str], dependencies=[Depends(require_scopes("fields:read"))])
async def missing_required(payload: MissingFieldsCheck, service: FieldVisibilityResolver = Depends(svc)):
    return await service.missing_required(payload.department_type, payload.category_id, payload.values)

@router.get("/fields", response_model=list[FieldConfigurationOut], dependencies=[Depends(require_scopes("fields:read"))])
async def list_field_configurations(store: RuleStorePort = Depends(get_store)):
    return await store.get_field_configurations()

@router.put("/fields/{field_name}", response_model=FieldConfigurationOut, dependencies=[Depends(require_scopes("fields:write"))])
async def save_field_configuration(
    field_name: str,
    payload: FieldConfigurationIn,
    principal: Principal = Depends(get_principal),
    service: FieldVisibilityResolver = Depends(svc),
):
    return await service.save_field_configuration(field_name, payload, principal.user_id)

@router.put("/categories/{category_id}/fields/{field_name}", response_model=CategoryFieldOverrideOut, dependencies=[Depends(require_scopes("fields:write"))])
async def set_category_override(
    category_id: uuid.UUID,
    field_name: str,
    payload: CategoryFieldOverrideIn,
    principal: Principal = Depends(get_principal),
    service: FieldVisibilityResolver = Depends(svc),
):
    obj = await service.set_category_override(category_id, field_name, payload, principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Category not found")
    return obj

@router.delete("/categories/{category_id}/fields/{field_name}", status_code=204, dependencies=[Depends(require_scopes("fields:write"))])
async def clear_category_override(
    category_id: uuid.UUID,
    field_name: str,
    principal: Principal = Depends(get_principal),
    service: FieldVisibilityResolver = Depends(svc),
):
    if not await service.clear_category_override(category_id, field_name, principal.user_id):
        raise HTTPException(status_code=404, detail="Override not found")
