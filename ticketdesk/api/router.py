from fastapi import APIRouter
from ticketdesk.modules.access.router import router as access_router
from ticketdesk.modules.fields.router import router as fields_router
from ticketdesk.modules.catalog.router import router as catalog_router
from ticketdesk.modules.priority.router import router as priority_router
from ticketdesk.modules.routing.router import router as routing_router
from ticketdesk.modules.tickets.router import router as tickets_router
from ticketdesk.modules.audit.router import router as audit_router

api_router = APIRouter()
api_router.include_router(access_router, tags=["access"])
api_router.include_router(catalog_router, tags=["catalog"])
api_router.include_router(fields_router, tags=["fields"])
api_router.include_router(priority_router, tags=["priority"])
api_router.include_router(routing_router, tags=["routing"])
api_router.include_router(tickets_router, tags=["tickets"])
api_router.include_router(audit_router, tags=["audit"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
