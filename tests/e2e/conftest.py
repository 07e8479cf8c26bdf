"""
E2E configuration: the client core in "http" mode talking to the mock
backend in-process through an ASGI transport.
"""

import httpx
import pytest

from proofquest.app import create_app
from proofquest.core.dependencies import build_container
from proofquest.core.service.progress.verifier.mock import MockVerifier
from proofquest.infra.config.settings import Settings
from proofquest.infra.storage.memory import InMemoryStorage
from tests.fakes import TEST_WALLET


@pytest.fixture
def backend():
    return create_app(verifier=MockVerifier(success_rate=1.0, delay=0, seed=21), bcrypt_rounds=4)


@pytest.fixture
def transport(backend):
    return httpx.ASGITransport(app=backend)


@pytest.fixture
async def api(transport):
    """Direct client for setting up backend data (e.g. registering users)"""
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver/api") as client:
        yield client


@pytest.fixture
def device_storage():
    return InMemoryStorage()


@pytest.fixture
async def container(transport, device_storage):
    async def wallet_signer():
        return TEST_WALLET, "0xsigned"

    async def social_token_provider(provider):
        return {"token": "oauth-token", "email": f"e2e@{provider.value}.com", "name": "E2E User"}

    container = await build_container(
        settings=Settings(BACKEND_MODE="http", STORAGE_ENCRYPTION_KEY=None),
        storage=device_storage,
        transport=transport,
        wallet_signer=wallet_signer,
        social_token_provider=social_token_provider,
    )
    try:
        yield container
    finally:
        await container.aclose()
