from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from proofquest.core.logger.logger import get_logger
from proofquest.infra.storage.base import SecureStorage, StorageError

logger = get_logger(__name__)


class RedisStorage(SecureStorage):
    """Redis-backed storage; every key lives under a common prefix"""

    def __init__(self, redis_client: Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _get_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[bytes]:
        try:
            data = await self.redis.get(self._get_key(key))
        except RedisError as e:
            logger.error(
                "Error reading key",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("get", key, e) from e

        if data is None:
            return None
        return data.encode() if isinstance(data, str) else data

    async def set(self, key: str, value: bytes) -> None:
        try:
            await self.redis.set(self._get_key(key), value)
            logger.debug("Saved key", extra={"key": key, "size": len(value)})
        except RedisError as e:
            logger.error(
                "Error saving key",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("set", key, e) from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._get_key(key))
            logger.debug("Deleted key", extra={"key": key})
        except RedisError as e:
            logger.error(
                "Error deleting key",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("delete", key, e) from e
