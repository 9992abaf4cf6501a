import logging

from ticketdesk.core.config import settings
from ticketdesk.core.db import SessionLocal
from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort
from ticketdesk.platform.adapters.cursor_db import DbRotationCursor
from ticketdesk.platform.adapters.cursor_memory import MemoryRotationCursor
from ticketdesk.platform.adapters.cursor_redis import RedisRotationCursor
from ticketdesk.platform.adapters.store_memory import MemoryRuleStore

log = logging.getLogger("provider_registry")

class ProviderRegistry:
    _rotation_cursor: RotationCursorPort | None = None
    _memory_store: MemoryRuleStore | None = None

    @classmethod
    def rotation_cursor(cls) -> RotationCursorPort:
        if cls._rotation_cursor is None:
            prov = (settings.ROUTING_CURSOR_PROVIDER or "db").lower()
            if prov == "redis":
                from ticketdesk.core.redis import redis_manager
                cls._rotation_cursor = RedisRotationCursor(redis_manager.client())
            elif prov == "memory":
                cls._rotation_cursor = MemoryRotationCursor()
            else:
                cls._rotation_cursor = DbRotationCursor(SessionLocal)
        return cls._rotation_cursor

    @classmethod
    def memory_store(cls) -> MemoryRuleStore:
        # one shared instance so every request sees the same in-process data
        if cls._memory_store is None:
            if settings.ENV != "local":
                log.warning(f"memory rule store selected in ENV={settings.ENV}; data is process-local and rollback does not undo writes")
            cls._memory_store = MemoryRuleStore()
        return cls._memory_store

    @classmethod
    def reset(cls) -> None:
        cls._rotation_cursor = None
        cls._memory_store = None

registry = ProviderRegistry()
