from functools import lru_cache
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from proofquest.core.logger.logger import get_logger
from proofquest.infra.config.settings import settings

logger = get_logger(__name__)


@lru_cache()
def get_redis_pool(url: Optional[str] = None) -> redis.ConnectionPool:
    """Connection pool per Redis URL (cached)"""
    # Storage values are raw, possibly encrypted bytes: no response decoding
    return redis.ConnectionPool.from_url(
        url or settings.REDIS_URL,
        decode_responses=False,
        max_connections=settings.REDIS_MAX_CONNECTIONS
    )


async def get_redis(url: Optional[str] = None) -> redis.Redis:
    """Redis client on the shared pool; pings before returning"""
    client = redis.Redis(connection_pool=get_redis_pool(url))
    try:
        await client.ping()
    except RedisError as e:
        logger.error("Failed to connect to Redis", extra={"error": str(e)})
        raise
    logger.info("Connected to Redis")
    return client
