import logging
import uuid
from redis.asyncio import from_url as redis_from_url
from redis.exceptions import RedisError

from ticketdesk.core.config import settings
from ticketdesk.core.errors import StoreUnavailable
from ticketdesk.platform.ports.rotation_cursor import RotationCursorPort

log = logging.getLogger("cursor.redis")

class RedisRotationCursor(RotationCursorPort):
    """INCR-backed cursor shared by every worker pointed at the same Redis."""

    def __init__(self, redis=None, prefix: str | None = None):
        if redis is None:
            if not settings.REDIS_URL:
                raise RuntimeError("REDIS_URL not configured")
            redis = redis_from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self.redis = redis
        self.prefix = prefix or settings.ROUTING_CURSOR_PREFIX

    async def next_position(self, rule_id: uuid.UUID) -> int:
        key = f"{self.prefix}:{rule_id}"
        try:
            value = await self.redis.incr(key)
        except RedisError as e:
            log.error(f"[REDIS CURSOR] INCR {key} failed: {e}")
            raise StoreUnavailable("routing cursor unavailable") from e
        log.debug(f"[REDIS CURSOR] {key} -> {value}")
        return int(value) - 1
