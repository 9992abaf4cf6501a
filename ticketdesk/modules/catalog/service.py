import uuid
from ticketdesk.modules.catalog.models import Category, Vendor
from ticketdesk.modules.catalog.schemas import CategoryCreate, VendorCreate
from ticketdesk.platform.ports.rule_store import RuleStorePort

def category_path(issue_type: str, *levels: str | None) -> str:
    return " > ".join([issue_type, *(lvl for lvl in levels if lvl)])

def category_snapshot(category: Category) -> dict:
    """Frozen copy stored on the ticket so renames and deletes never change what it shows."""
    return {
        "category_id": str(category.id),
        "issue_type": category.issue_type,
        "l1": category.l1,
        "l2": category.l2,
        "l3": category.l3,
        "l4": category.l4,
        "path": category.path,
        "department_type": category.department_type,
        "issue_priority_points": category.issue_priority_points,
    }

class CatalogService:
    def __init__(self, store: RuleStorePort):
        self.store = store

    async def create_category(self, payload: CategoryCreate, actor_id: uuid.UUID | None = None) -> Category:
        data = payload.model_dump()
        obj = await self.store.save_category(Category(
            path=category_path(payload.issue_type, payload.l1, payload.l2, payload.l3, payload.l4), **data
        ))
        await self.store.record_audit(actor_id, "category.create", "category", str(obj.id), {"path": obj.path})
        await self.store.commit()
        return obj

    async def delete_category(self, category_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> bool:
        # soft delete; tickets keep their snapshot
        removed = await self.store.delete_category(category_id)
        if removed:
            await self.store.record_audit(actor_id, "category.delete", "category", str(category_id))
            await self.store.commit()
        return removed

    async def save_vendor(self, payload: VendorCreate) -> Vendor:
        vendor = await self.store.get_vendor(payload.handle) or Vendor(handle=payload.handle)
        vendor.name = payload.name
        vendor.gmv_tier = payload.gmv_tier
        vendor = await self.store.save_vendor(vendor)
        await self.store.commit()
        return vendor
