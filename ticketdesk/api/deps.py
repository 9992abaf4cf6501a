from ticketdesk.core.config import settings
from ticketdesk.core.db import SessionLocal
from ticketdesk.platform.adapters.store_sql import SqlRuleStore
from ticketdesk.platform.provider_registry import registry

async def get_store():
    if settings.RULE_STORE_PROVIDER == "memory":
        yield registry.memory_store()
    else:
        async with SessionLocal() as session:
            yield SqlRuleStore(session)
