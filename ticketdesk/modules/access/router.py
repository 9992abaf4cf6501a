import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from ticketdesk.api.deps import get_store
from ticketdesk.core.security import get_principal, require_scopes, Principal
from ticketdesk.modules.access.schemas import (
    AccessDecision, EffectiveAccess, EffectivePermissions, PermissionCheck,
    AccessOverrideSet, CustomPermissionsSet,
    RoleCreate, RoleUpdate, RoleOut, UserCreate, UserOut, PageOut, FeatureOut,
)
from ticketdesk.modules.access.service import PermissionResolver, RoleService
from ticketdesk.platform.ports.rule_store import RuleStorePort

router = APIRouter()

def resolver(store: RuleStorePort = Depends(get_store)) -> PermissionResolver:
    return PermissionResolver(store)

def roles_svc(store: RuleStorePort = Depends(get_store)) -> RoleService:
    return RoleService(store)

# ---- Resolution ----

@router.get("/access/users/{user_id}/pages/{page_key}", response_model=AccessDecision, dependencies=[Depends(require_scopes("access:read"))])
async def resolve_page(user_id: uuid.UUID, page_key: str, service: PermissionResolver = Depends(resolver)):
    return await service.resolve_access(user_id, page_key)

@router.get("/access/users/{user_id}/pages/{page_key}/features/{feature_key}", response_model=AccessDecision, dependencies=[Depends(require_scopes("access:read"))])
async def resolve_feature(user_id: uuid.UUID, page_key: str, feature_key: str, service: PermissionResolver = Depends(resolver)):
    return await service.resolve_access(user_id, page_key, feature_key)

@router.get("/access/users/{user_id}", response_model=EffectiveAccess, dependencies=[Depends(require_scopes("access:read"))])
async def effective_access(user_id: uuid.UUID, service: PermissionResolver = Depends(resolver)):
    obj = await service.effective_access(user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    return obj

@router.get("/access/me", response_model=EffectiveAccess)
async def my_access(principal: Principal = Depends(get_principal), service: PermissionResolver = Depends(resolver)):
    obj = await service.effective_access(principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    return obj

@router.get("/access/users/{user_id}/permissions", response_model=EffectivePermissions, dependencies=[Depends(require_scopes("access:read"))])
async def effective_permissions(user_id: uuid.UUID, service: PermissionResolver = Depends(resolver)):
    obj = await service.effective_permissions(user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    return obj

@router.get("/access/users/{user_id}/permissions/check", response_model=PermissionCheck, dependencies=[Depends(require_scopes("access:read"))])
async def check_permission(user_id: uuid.UUID, permission: str = Query(..., min_length=1), service: PermissionResolver = Depends(resolver)):
    return PermissionCheck(permission=permission, granted=await service.has_permission(user_id, permission))

# ---- Overrides ----

@router.put("/access/{scope}/{key}/pages/{page_key}", response_model=AccessDecision, dependencies=[Depends(require_scopes("access:write"))])
async def set_page_override(
    scope: str,
    key: uuid.UUID,
    page_key: str,
    payload: AccessOverrideSet,
    principal: Principal = Depends(get_principal),
    service: PermissionResolver = Depends(resolver),
):
    if scope not in ("role", "user"):
        raise HTTPException(status_code=404, detail="Unknown override scope")
    obj = await service.set_page_access(scope, key, page_key, payload.enabled, actor_id=principal.user_id, reason=payload.reason)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{scope.capitalize()} or page not found")
    return obj

@router.delete("/access/{scope}/{key}/pages/{page_key}", status_code=204, dependencies=[Depends(require_scopes("access:write"))])
async def clear_page_override(
    scope: str,
    key: uuid.UUID,
    page_key: str,
    principal: Principal = Depends(get_principal),
    service: PermissionResolver = Depends(resolver),
):
    if scope not in ("role", "user") or not await service.clear_page_access(scope, key, page_key, actor_id=principal.user_id):
        raise HTTPException(status_code=404, detail="Override not found")

@router.put("/access/{scope}/{key}/pages/{page_key}/features/{feature_key}", response_model=AccessDecision, dependencies=[Depends(require_scopes("access:write"))])
async def set_feature_override(
    scope: str,
    key: uuid.UUID,
    page_key: str,
    feature_key: str,
    payload: AccessOverrideSet,
    principal: Principal = Depends(get_principal),
    service: PermissionResolver = Depends(resolver),
):
    if scope not in ("role", "user"):
        raise HTTPException(status_code=404, detail="Unknown override scope")
    obj = await service.set_feature_access(scope, key, page_key, feature_key, payload.enabled, actor_id=principal.user_id, reason=payload.reason)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{scope.capitalize()} or feature not found")
    return obj

@router.delete("/access/{scope}/{key}/pages/{page_key}/features/{feature_key}", status_code=204, dependencies=[Depends(require_scopes("access:write"))])
async def clear_feature_override(
    scope: str,
    key: uuid.UUID,
    page_key: str,
    feature_key: str,
    principal: Principal = Depends(get_principal),
    service: PermissionResolver = Depends(resolver),
):
    if scope not in ("role", "user") or not await service.clear_feature_access(scope, key, page_key, feature_key, actor_id=principal.user_id):
        raise HTTPException(status_code=404, detail="Override not found")

# ---- Pages & features ----

@router.get("/access/pages", response_model=list[PageOut], dependencies=[Depends(require_scopes("access:read"))])
async def list_pages(store: RuleStorePort = Depends(get_store)):
    return await store.list_pages()

@router.get("/access/features", response_model=list[FeatureOut], dependencies=[Depends(require_scopes("access:read"))])
async def list_features(page_key: str | None = None, store: RuleStorePort = Depends(get_store)):
    return await store.list_features(page_key)

# ---- Roles ----

@router.get("/roles", response_model=list[RoleOut], dependencies=[Depends(require_scopes("roles:read"))])
async def list_roles(service: RoleService = Depends(roles_svc)):
    return await service.list_roles()

@router.post("/roles", response_model=RoleOut, status_code=201, dependencies=[Depends(require_scopes("roles:write"))])
async def create_role(payload: RoleCreate, principal: Principal = Depends(get_principal), service: RoleService = Depends(roles_svc)):
    obj = await service.create_role(payload, principal.user_id)
    if not obj:
        raise HTTPException(status_code=409, detail="Role name already exists")
    return obj

@router.patch("/roles/{role_id}", response_model=RoleOut, dependencies=[Depends(require_scopes("roles:write"))])
async def update_role(role_id: uuid.UUID, payload: RoleUpdate, principal: Principal = Depends(get_principal), service: RoleService = Depends(roles_svc)):
    obj = await service.update_role(role_id, payload, principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Role not found")
    return obj

@router.delete("/roles/{role_id}", status_code=204, dependencies=[Depends(require_scopes("roles:write"))])
async def delete_role(role_id: uuid.UUID, principal: Principal = Depends(get_principal), service: RoleService = Depends(roles_svc)):
    if not await service.delete_role(role_id, principal.user_id):
        raise HTTPException(status_code=404, detail="Role not found")

# ---- Users ----

@router.get("/users", response_model=list[UserOut], dependencies=[Depends(require_scopes("users:read"))])
async def list_users(service: RoleService = Depends(roles_svc)):
    return await service.list_users()

@router.post("/users", response_model=UserOut, status_code=201, dependencies=[Depends(require_scopes("users:write"))])
async def create_user(payload: UserCreate, principal: Principal = Depends(get_principal), service: RoleService = Depends(roles_svc)):
    return await service.create_user(payload, principal.user_id)

@router.put("/users/{user_id}/custom-permissions", response_model=UserOut, dependencies=[Depends(require_scopes("users:write"))])
async def set_custom_permissions(
    user_id: uuid.UUID,
    payload: CustomPermissionsSet,
    principal: Principal = Depends(get_principal),
    service: RoleService = Depends(roles_svc),
):
    obj = await service.set_custom_permissions(user_id, payload.permissions, principal.user_id)
    if not obj:
        raise HTTPException(status_code=404, detail="User not found")
    return obj
