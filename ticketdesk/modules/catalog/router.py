import uuid
from fastapi import APIRouter, Depends, HTTPException
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import get_principal, require_scopes, Principal
from ticketdesk.modules.catalog.schemas import CategoryCreate, CategoryOut, VendorCreate, VendorOut
from ticketdesk.modules.catalog.service import CatalogService
from ticketdesk.platform.ports.rule_store import RuleStorePort

router = APIRouter()

def svc(store: RuleStorePort = Depends(get_store)) -> CatalogService:
    return CatalogService(store)

@router.post("/categories", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_scopes("catalog:write"))])
async def create_category(payload: CategoryCreate, principal: Principal = Depends(get_principal), service: CatalogService = Depends(svc)):
    return await service.create_category(payload, principal.user_id)

@router.get("/categories", response_model=list[CategoryOut], dependencies=[Depends(require_scopes("catalog:read"))])
async def list_categories(store: RuleStorePort = Depends(get_store)):
    return await store.list_categories()

@router.get("/categories/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_scopes("catalog:read"))])
async def get_category(category_id: uuid.UUID, store: RuleStorePort = Depends(get_store)):
    obj = await store.get_category(category_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Category not found")
    return obj

@router.delete("/categories/{category_id}", status_code=204, dependencies=[Depends(require_scopes("catalog:write"))])
async def delete_category(category_id: uuid.UUID, principal: Principal = Depends(get_principal), service: CatalogService = Depends(svc)):
    if not await service.delete_category(category_id, principal.user_id):
        raise HTTPException(status_code=404, detail="Category not found")

@router.put("/vendors", response_model=VendorOut, dependencies=[Depends(require_scopes("catalog:write"))])
async def save_vendor(payload: VendorCreate, service: CatalogService = Depends(svc)):
    return await service.save_vendor(payload)

@router.get("/vendors/{handle}", response_model=VendorOut, dependencies=[Depends(require_scopes("catalog:read"))])
async def get_vendor(handle: str, store: RuleStorePort = Depends(get_store)):
    obj = await store.get_vendor(handle)
    if not obj:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return obj
