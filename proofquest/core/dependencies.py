"""
Composition root for the client core.
Builds one SessionStore and one ProgressStore wired to either the simulated
collaborators or the HTTP backend, selected by Settings.BACKEND_MODE.
"""

from datetime import timedelta
from typing import List, Optional

import httpx

from proofquest.core.http_client import create_client
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.progress.catalog.base import ChallengeCatalog
from proofquest.core.service.progress.catalog.http import HttpChallengeCatalog
from proofquest.core.service.progress.catalog.mock import InMemoryChallengeCatalog
from proofquest.core.service.progress.progress_store import ProgressStore
from proofquest.core.service.progress.verifier.base import Verifier
from proofquest.core.service.progress.verifier.http import HttpVerifier
from proofquest.core.service.progress.verifier.mock import MockVerifier
from proofquest.core.service.session.connectors.base import Connector
from proofquest.core.service.session.connectors.http import HttpConnector, SocialTokenProvider, WalletSigner
from proofquest.core.service.session.connectors.mock import MockConnector
from proofquest.core.service.session.models.identity import AuthState
from proofquest.core.service.session.session_store import SessionStore
from proofquest.infra.config.redis import get_redis
from proofquest.infra.config.settings import Settings, get_settings
from proofquest.infra.storage.base import SecureStorage
from proofquest.infra.storage.encrypted import EncryptedStorage
from proofquest.infra.storage.memory import InMemoryStorage
from proofquest.infra.storage.redis_storage import RedisStorage

logger = get_logger(__name__)

BACKEND_MODES = ("mock", "http")


class AppContainer:
    """Owns the stores for one running app; pass it down instead of using globals"""

    def __init__(self, session_store: SessionStore, progress_store: ProgressStore,
                 http_clients: Optional[List[httpx.AsyncClient]] = None):
        self.session_store = session_store
        self.progress_store = progress_store
        self._http_clients = http_clients or []
        session_store.add_identity_listener(progress_store.switch_identity)

    async def start(self) -> AuthState:
        """Restore any persisted session and the matching progress"""
        return await self.session_store.initialize()

    async def aclose(self) -> None:
        for client in self._http_clients:
            await client.aclose()


async def build_storage(settings: Settings) -> SecureStorage:
    if settings.STORAGE_BACKEND == "redis":
        storage: SecureStorage = RedisStorage(await get_redis(settings.REDIS_URL), key_prefix=settings.STORAGE_KEY_PREFIX)
    elif settings.STORAGE_BACKEND == "memory":
        storage = InMemoryStorage()
    else:
        raise ValueError(f"Unsupported storage backend: {settings.STORAGE_BACKEND}")

    if settings.STORAGE_ENCRYPTION_KEY:
        storage = EncryptedStorage(storage, settings.STORAGE_ENCRYPTION_KEY)
    else:
        logger.warning("Storage encryption key not set; values are stored unencrypted")
    return storage


async def build_container(
    settings: Optional[Settings] = None,
    storage: Optional[SecureStorage] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    wallet_signer: Optional[WalletSigner] = None,
    social_token_provider: Optional[SocialTokenProvider] = None,
) -> AppContainer:
    """
    Build the stores.

    Args:
        settings: Defaults to the cached application settings
        storage: Overrides the storage backend from settings
        transport: httpx transport for "http" mode (tests pass an ASGI transport)
        wallet_signer: Device wallet integration for "http" mode
        social_token_provider: Device OAuth integration for "http" mode
    """
    settings = settings or get_settings()
    if settings.BACKEND_MODE not in BACKEND_MODES:
        raise ValueError(f"Unsupported backend mode: {settings.BACKEND_MODE}")

    storage = storage or await build_storage(settings)
    http_clients: List[httpx.AsyncClient] = []

    if settings.BACKEND_MODE == "http":
        extra = {"transport": transport} if transport else {}
        auth_client = create_client("default", **extra)
        verifier_client = create_client("verifier", **extra)
        http_clients = [auth_client, verifier_client]

        connector: Connector = HttpConnector(auth_client, wallet_signer, social_token_provider)
        session_store = SessionStore(
            storage,
            connector,
            connect_timeout=settings.CONNECT_TIMEOUT_SECONDS,
            session_max_age=timedelta(days=settings.SESSION_MAX_AGE_DAYS),
            min_password_length=settings.MIN_PASSWORD_LENGTH,
        )
        token_provider = lambda: session_store.access_token
        catalog: ChallengeCatalog = HttpChallengeCatalog(auth_client, token_provider)
        verifier: Verifier = HttpVerifier(verifier_client, token_provider)
    else:
        connector = MockConnector(delay=settings.MOCK_CONNECT_DELAY_SECONDS, chain_id=settings.MOCK_CHAIN_ID)
        session_store = SessionStore(
            storage,
            connector,
            connect_timeout=settings.CONNECT_TIMEOUT_SECONDS,
            session_max_age=timedelta(days=settings.SESSION_MAX_AGE_DAYS),
            min_password_length=settings.MIN_PASSWORD_LENGTH,
        )
        catalog = InMemoryChallengeCatalog(delay=settings.MOCK_CATALOG_DELAY_SECONDS)
        verifier = MockVerifier(
            success_rate=settings.MOCK_VERIFY_SUCCESS_RATE,
            delay=settings.MOCK_VERIFY_DELAY_SECONDS,
        )

    progress_store = ProgressStore(
        storage,
        catalog,
        verifier,
        reward_unit=settings.REWARD_UNIT,
        verify_timeout=settings.VERIFY_TIMEOUT_SECONDS,
    )

    logger.info(
        "Stores built",
        extra={"backend_mode": settings.BACKEND_MODE, "storage": type(storage).__name__}
    )
    return AppContainer(session_store, progress_store, http_clients)
