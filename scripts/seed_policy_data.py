import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ticketdesk.core.db import SessionLocal, init_models
from ticketdesk.modules.access.seed import seed_rule_store
from ticketdesk.platform.adapters.store_sql import SqlRuleStore

async def main():
    """
    Loads the default roles, pages, features and ticket form fields.
    Safe to run repeatedly; rows that already exist are left alone.
    """
    await init_models()
    async with SessionLocal() as db:
        created = await seed_rule_store(SqlRuleStore(db))
    for kind, count in created.items():
        print(f"  - {kind}: {count} created")
    print("Seeding complete.")

if __name__ == "__main__":
    asyncio.run(main())
