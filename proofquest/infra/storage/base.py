"""
Key-value secure storage contract shared by the session and progress stores.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageError(Exception):
    """Raised by storage backends when a read, write or delete fails."""

    def __init__(self, operation: str, key: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage {operation} failed for key '{key}'{detail}")


class SecureStorage(ABC):
    """
    Abstract key-value storage. Values are opaque bytes; callers own the
    serialization format.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """
        Read a value

        Returns:
            Optional[bytes]: Stored value, or None when the key is absent

        Raises:
            StorageError: The backend could not be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Write a value, replacing any previous one"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a value; deleting a missing key is not an error"""
        pass
