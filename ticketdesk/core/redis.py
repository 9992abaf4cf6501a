import logging
from redis import asyncio as aioredis
from ticketdesk.core.config import settings

log = logging.getLogger(__name__)


class RedisManager:
    def __init__(self):
        self.redis = None

    async def connect(self):
        """Connect to Redis (called on FastAPI startup)."""
        self.redis = await aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )
        log.info(f"Connected to redis at {settings.REDIS_URL}")

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self.redis = None

    def client(self):
        if self.redis is None:
            raise RuntimeError("Redis is not connected; call redis_manager.connect() first")
        return self.redis

redis_manager = RedisManager()
