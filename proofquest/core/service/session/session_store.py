import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from proofquest.core.exceptions.base import (
    BusyError, ConnectionFailedError, PersistenceFailedError, ValidationError
)
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.observable import Observable
from proofquest.core.service.session.connectors.base import Connector
from proofquest.core.service.session.models.identity import (
    AuthState, AuthStatus, Identity, LoginMethod, Session, SocialProvider
)
from proofquest.core.service.session.validators import CredentialValidator
from proofquest.infra.config.settings import get_settings
from proofquest.infra.storage.base import SecureStorage

logger = get_logger(__name__)
settings = get_settings()

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]
Handshake = Callable[[], Awaitable[Tuple[Identity, Optional[str]]]]


class SessionStore:
    """
    Owns the authenticated identity and its persisted session.

    State machine: UNAUTHENTICATED -> CONNECTING -> AUTHENTICATED, and back to
    UNAUTHENTICATED on failure, cancellation or disconnect. Only one connect
    may be in flight; a second one is rejected with BusyError.
    """

    SESSION_KEY = "session"

    def __init__(
        self,
        storage: SecureStorage,
        connector: Connector,
        connect_timeout: Optional[float] = None,
        session_max_age: Optional[timedelta] = None,
        min_password_length: Optional[int] = None,
    ):
        self.storage = storage
        self.connector = connector
        self.connect_timeout = connect_timeout
        self.session_max_age = session_max_age or timedelta(days=settings.SESSION_MAX_AGE_DAYS)
        self.min_password_length = min_password_length or settings.MIN_PASSWORD_LENGTH
        self.auth_state: Observable[AuthState] = Observable(AuthState.unauthenticated())
        self._session: Optional[Session] = None
        self._connecting = False
        self._identity_listeners: List[IdentityListener] = []

    @property
    def status(self) -> AuthStatus:
        return self.auth_state.value.status

    @property
    def identity(self) -> Optional[Identity]:
        return self.auth_state.value.identity

    @property
    def is_authenticated(self) -> bool:
        return self.auth_state.value.is_authenticated

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def add_identity_listener(self, listener: IdentityListener) -> None:
        """Register an async callback awaited whenever the active identity changes"""
        self._identity_listeners.append(listener)

    async def _notify_identity(self, identity: Optional[Identity]) -> None:
        for listener in self._identity_listeners:
            try:
                await listener(identity)
            except Exception as e:
                logger.error(
                    "Identity listener failed",
                    extra={
                        "identity_id": identity.id if identity else None,
                        "error": str(e)
                    },
                    exc_info=True
                )

    async def _discard_persisted_session(self) -> None:
        try:
            await self.storage.delete(self.SESSION_KEY)
        except Exception as e:
            logger.error(
                "Failed to delete persisted session",
                extra={"error": str(e)}
            )

    async def initialize(self) -> AuthState:
        """
        Restore a persisted session without re-authenticating.
        Never raises: unreadable, corrupt or expired sessions leave the store
        unauthenticated.
        """
        try:
            raw = await self.storage.get(self.SESSION_KEY)
        except Exception as e:
            logger.error(
                "Failed to read persisted session",
                extra={"error": str(e)}
            )
            raw = None

        session = None
        if raw is not None:
            try:
                session = Session.model_validate_json(raw)
            except (PydanticValidationError, ValueError) as e:
                logger.warning(
                    "Discarding corrupt persisted session",
                    extra={"error": str(e)}
                )
                await self._discard_persisted_session()

        if session is not None and session.is_expired(self.session_max_age):
            logger.info(
                "Persisted session expired",
                extra={
                    "identity_id": session.identity.id,
                    "issued_at": session.issued_at.isoformat()
                }
            )
            await self._discard_persisted_session()
            session = None

        if session is None:
            self._session = None
            self.auth_state.set(AuthState.unauthenticated())
            await self._notify_identity(None)
            return self.auth_state.value

        self._session = session
        self.auth_state.set(AuthState.authenticated(session.identity))
        logger.info(
            "Session restored",
            extra={
                "identity_id": session.identity.id,
                "login_method": session.identity.login_method.value
            }
        )
        await self._notify_identity(session.identity)
        return self.auth_state.value

    async def connect_wallet(self) -> Identity:
        async def handshake() -> Tuple[Identity, Optional[str]]:
            info = await self.connector.connect_wallet()
            identity = Identity(
                id=info.address,
                login_method=LoginMethod.WALLET,
                display_handle=info.address,
            )
            return identity, info.access_token

        return await self._connect(LoginMethod.WALLET, handshake)

    async def connect_social(self, provider: Union[SocialProvider, str]) -> Identity:
        try:
            provider = SocialProvider(provider)
        except ValueError:
            raise ValidationError(f"Unsupported social provider: {provider}", field="provider")

        async def handshake() -> Tuple[Identity, Optional[str]]:
            info = await self.connector.connect_social(provider)
            identity = Identity(
                id=info.external_user_id,
                login_method=LoginMethod.SOCIAL,
                provider=provider,
                display_handle=provider.value,
                name=info.name,
                email=info.email,
            )
            return identity, info.access_token

        return await self._connect(LoginMethod.SOCIAL, handshake)

    async def connect_email(self, email: str, password: str) -> Identity:
        is_valid, error = CredentialValidator.validate_email(email)
        if not is_valid:
            raise ValidationError(error, field="email")
        is_valid, error = CredentialValidator.validate_password(password, self.min_password_length)
        if not is_valid:
            raise ValidationError(error, field="password")

        normalized = CredentialValidator.normalize_email(email)

        async def handshake() -> Tuple[Identity, Optional[str]]:
            info = await self.connector.connect_email(normalized, password)
            handle = CredentialValidator.normalize_email(info.email or normalized)
            identity = Identity(
                id=info.external_user_id,
                login_method=LoginMethod.EMAIL,
                display_handle=handle,
                email=handle,
                name=info.name,
            )
            return identity, info.access_token

        return await self._connect(LoginMethod.EMAIL, handshake)

    async def _run_handshake(self, login_method: LoginMethod, handshake: Handshake) -> Tuple[Identity, Optional[str]]:
        """Run a connector handshake, converting every failure to ConnectionFailedError"""
        try:
            if self.connect_timeout:
                return await asyncio.wait_for(handshake(), timeout=self.connect_timeout)
            return await handshake()
        except asyncio.TimeoutError as e:
            logger.warning(
                "Connect timed out",
                extra={"login_method": login_method.value, "timeout": self.connect_timeout}
            )
            raise ConnectionFailedError(
                f"{login_method.value} connection timed out",
                details={"login_method": login_method.value}
            ) from e
        except Exception as e:
            logger.warning(
                "Connect failed",
                extra={"login_method": login_method.value, "error": str(e)}
            )
            raise ConnectionFailedError(
                f"Failed to connect with {login_method.value}",
                details={"login_method": login_method.value, "reason": str(e)}
            ) from e

    async def _connect(self, login_method: LoginMethod, handshake: Handshake) -> Identity:
        if self._connecting:
            raise BusyError()

        self._connecting = True
        previous_identity = self.identity
        had_session = self._session is not None
        self._session = None
        self.auth_state.set(AuthState.connecting())

        try:
            try:
                identity, access_token = await self._run_handshake(login_method, handshake)
            except (ConnectionFailedError, asyncio.CancelledError):
                # A stale session must not come back on the next restart
                await self._revert(previous_identity, discard_persisted=had_session)
                raise

            session = Session(identity=identity, access_token=access_token)
            persist_error = None
            try:
                await self.storage.set(self.SESSION_KEY, session.model_dump_json().encode())
            except asyncio.CancelledError:
                await self._revert(previous_identity, discard_persisted=True)
                raise
            except Exception as e:
                logger.error(
                    "Failed to persist session",
                    extra={"identity_id": identity.id, "error": str(e)}
                )
                persist_error = PersistenceFailedError("Failed to persist session", key=self.SESSION_KEY)
        finally:
            self._connecting = False

        self._session = session
        self.auth_state.set(AuthState.authenticated(identity))
        logger.info(
            "Identity connected",
            extra={"identity_id": identity.id, "login_method": login_method.value}
        )
        await self._notify_identity(identity)

        if persist_error is not None:
            raise persist_error
        return identity

    async def _revert(self, previous_identity: Optional[Identity], discard_persisted: bool) -> None:
        self._session = None
        self.auth_state.set(AuthState.unauthenticated())
        if discard_persisted:
            await self._discard_persisted_session()
        if previous_identity is not None:
            await self._notify_identity(None)

    async def disconnect(self) -> None:
        """Sign out. Safe to call when nobody is signed in."""
        if self._connecting:
            raise BusyError("Cannot disconnect while a connect is in progress")

        previous_identity = self.identity
        self._session = None
        self.auth_state.set(AuthState.unauthenticated())

        try:
            await self.connector.disconnect()
        except Exception as e:
            logger.warning("Connector disconnect failed", extra={"error": str(e)})

        if previous_identity is not None:
            logger.info("Identity disconnected", extra={"identity_id": previous_identity.id})
            await self._notify_identity(None)

        try:
            await self.storage.delete(self.SESSION_KEY)
        except Exception as e:
            logger.error("Failed to delete persisted session", extra={"error": str(e)})
            raise PersistenceFailedError("Failed to delete persisted session", key=self.SESSION_KEY) from e
