"""
At-rest encryption for any SecureStorage backend.
"""

from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from proofquest.core.logger.logger import get_logger
from proofquest.infra.storage.base import SecureStorage, StorageError

logger = get_logger(__name__)


class EncryptedStorage(SecureStorage):
    """
    Wraps another storage backend and encrypts every value with Fernet
    (AES-128-CBC + HMAC-SHA256) before it reaches the backend.

    A value that fails authentication (tampered, or written under another
    key) surfaces as a StorageError on read.
    """

    def __init__(self, inner: SecureStorage, key: Union[str, bytes]):
        self.inner = inner
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    async def get(self, key: str) -> Optional[bytes]:
        token = await self.inner.get(key)
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token)
        except InvalidToken as e:
            logger.warning("Stored value failed decryption", extra={"key": key})
            raise StorageError("get", key, e) from e

    async def set(self, key: str, value: bytes) -> None:
        await self.inner.set(key, self._fernet.encrypt(value))

    async def delete(self, key: str) -> None:
        await self.inner.delete(key)
