import asyncio
import random
from typing import Optional

from proofquest.core.logger.logger import get_logger
from proofquest.core.service.session.connectors.base import (
    AccountInfo, Connector, ConnectorError, WalletInfo
)
from proofquest.core.service.session.models.identity import SocialProvider

logger = get_logger(__name__)


class MockConnector(Connector):
    """
    Simulated wallet/social/email handshakes for demos and tests.

    Each call sleeps for `delay` seconds to mimic network latency. Pass `seed`
    for reproducible addresses and user ids, and `fail_with` to make every
    connect call fail with that message.
    """

    def __init__(
        self,
        delay: float = 1.0,
        chain_id: str = "xion-1",
        seed: Optional[int] = None,
        fail_with: Optional[str] = None,
    ):
        self.delay = delay
        self.chain_id = chain_id
        self.fail_with = fail_with
        self._random = random.Random(seed)
        self.connected = False

    async def _simulate(self, action: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with:
            logger.debug("Simulated connector failure", extra={"action": action})
            raise ConnectorError(self.fail_with)

    def _hex(self, length: int) -> str:
        return "".join(self._random.choice("0123456789abcdef") for _ in range(length))

    async def connect_wallet(self) -> WalletInfo:
        await self._simulate("wallet")
        self.connected = True
        return WalletInfo(address="0x" + self._hex(40), chain_id=self.chain_id)

    async def connect_social(self, provider: SocialProvider) -> AccountInfo:
        await self._simulate(f"social:{provider.value}")
        self.connected = True
        return AccountInfo(
            external_user_id="user_" + self._hex(8),
            email=f"user@{provider.value}.com",
            name=f"{provider.value.capitalize()} User",
        )

    async def connect_email(self, email: str, password: str) -> AccountInfo:
        await self._simulate("email")
        self.connected = True
        return AccountInfo(
            external_user_id="email_" + self._hex(8),
            email=email,
            name=email.split("@", 1)[0],
        )

    async def disconnect(self) -> None:
        self.connected = False
