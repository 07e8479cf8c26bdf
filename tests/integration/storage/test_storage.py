from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from proofquest.core.service.session.session_store import SessionStore
from proofquest.core.service.session.models.identity import AuthStatus
from proofquest.infra.storage.base import StorageError
from proofquest.infra.storage.encrypted import EncryptedStorage
from proofquest.infra.storage.memory import InMemoryStorage
from proofquest.infra.storage.redis_storage import RedisStorage
from tests.fakes import TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def key():
    return EncryptedStorage.generate_key()


@pytest.mark.asyncio
async def test_memory_storage_basic_operations():
    storage = InMemoryStorage()

    assert await storage.get("missing") is None
    await storage.set("a", b"1")
    assert await storage.get("a") == b"1"
    await storage.delete("a")
    await storage.delete("a")
    assert storage.keys() == []


@pytest.mark.asyncio
async def test_encrypted_storage_hides_plaintext(key):
    inner = InMemoryStorage()
    storage = EncryptedStorage(inner, key)

    await storage.set("session", b'{"email": "alice@example.com"}')

    assert b"alice" not in await inner.get("session")
    assert await storage.get("session") == b'{"email": "alice@example.com"}'


@pytest.mark.asyncio
async def test_encrypted_storage_rejects_foreign_key(key):
    inner = InMemoryStorage()
    await EncryptedStorage(inner, key).set("session", b"secret")

    with pytest.raises(StorageError):
        await EncryptedStorage(inner, EncryptedStorage.generate_key()).get("session")


@pytest.mark.asyncio
async def test_session_survives_restart_with_encryption(key, connector):
    inner = InMemoryStorage()
    store = SessionStore(EncryptedStorage(inner, key), connector)
    identity = await store.connect_email(TEST_EMAIL, TEST_PASSWORD)

    restarted = SessionStore(EncryptedStorage(inner, key), connector)
    state = await restarted.initialize()

    assert state.status == AuthStatus.AUTHENTICATED
    assert restarted.identity == identity


@pytest.mark.asyncio
async def test_unreadable_session_degrades_to_unauthenticated(key, connector):
    inner = InMemoryStorage()
    await SessionStore(EncryptedStorage(inner, key), connector).connect_wallet()

    restarted = SessionStore(EncryptedStorage(inner, EncryptedStorage.generate_key()), connector)
    state = await restarted.initialize()

    assert state.status == AuthStatus.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_redis_storage_prefixes_keys():
    client = AsyncMock()
    client.get.return_value = b"value"
    storage = RedisStorage(client, key_prefix="proofquest:")

    await storage.set("session", b"value")
    assert await storage.get("session") == b"value"
    await storage.delete("session")

    client.set.assert_awaited_once_with("proofquest:session", b"value")
    client.get.assert_awaited_once_with("proofquest:session")
    client.delete.assert_awaited_once_with("proofquest:session")


@pytest.mark.asyncio
async def test_redis_storage_wraps_errors():
    client = AsyncMock()
    client.set.side_effect = RedisConnectionError("connection refused")
    storage = RedisStorage(client)

    with pytest.raises(StorageError) as exc_info:
        await storage.set("session", b"value")

    assert exc_info.value.operation == "set"
    assert exc_info.value.key == "session"
