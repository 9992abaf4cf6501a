from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

def import_models():
    # every mapped class must be imported before create_all
    from ticketdesk.modules.access import models as _access  # noqa: F401
    from ticketdesk.modules.catalog import models as _catalog  # noqa: F401
    from ticketdesk.modules.fields import models as _fields  # noqa: F401
    from ticketdesk.modules.routing import models as _routing  # noqa: F401
    from ticketdesk.modules.tickets import models as _tickets  # noqa: F401
    from ticketdesk.modules.audit import models as _audit  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode; otherwise, migrations own the schema.
    if settings.DB_MANAGE.lower() == "create_all":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
