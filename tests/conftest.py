"""
Shared fixtures: in-memory storage, zero-latency mock collaborators and the
stores built on them.
"""

import pytest

from proofquest.core.service.progress.catalog.mock import InMemoryChallengeCatalog
from proofquest.core.service.progress.progress_store import ProgressStore
from proofquest.core.service.progress.verifier.mock import MockVerifier
from proofquest.core.service.session.connectors.mock import MockConnector
from proofquest.core.service.session.models.identity import Identity, LoginMethod
from proofquest.core.service.session.session_store import SessionStore
from tests.fakes import TEST_EMAIL, FlakyStorage


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def connector():
    return MockConnector(delay=0, seed=42)


@pytest.fixture
def session_store(storage, connector):
    return SessionStore(storage, connector, connect_timeout=5)


@pytest.fixture
def catalog():
    return InMemoryChallengeCatalog()


@pytest.fixture
def verifier():
    return MockVerifier(success_rate=1.0, delay=0, seed=7)


@pytest.fixture
def progress_store(storage, catalog, verifier):
    return ProgressStore(storage, catalog, verifier, reward_unit="XION", verify_timeout=5)


@pytest.fixture
def alice():
    return Identity(
        id="email_alice",
        login_method=LoginMethod.EMAIL,
        display_handle=TEST_EMAIL,
        email=TEST_EMAIL,
    )


@pytest.fixture
async def signed_in_store(progress_store, alice):
    await progress_store.switch_identity(alice)
    return progress_store
