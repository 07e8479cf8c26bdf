"""
Connector abstraction for the login methods.
Each backend (simulated or HTTP) implements the same capability set so the
session store never needs to know which one it was given.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from proofquest.core.service.session.models.identity import SocialProvider


class WalletInfo(BaseModel):
    """Result of a wallet handshake"""
    address: str = Field(..., min_length=1)
    chain_id: Optional[str] = None
    access_token: Optional[str] = None


class AccountInfo(BaseModel):
    """Result of a social or email login"""
    external_user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    name: Optional[str] = None
    access_token: Optional[str] = None


class ConnectorError(Exception):
    """Raised by connectors when the handshake is rejected or cannot complete"""


class Connector(ABC):
    """Abstract base class for login handshakes"""

    @abstractmethod
    async def connect_wallet(self) -> WalletInfo:
        """
        Connect to the user's wallet

        Returns:
            WalletInfo: Connected wallet address

        Raises:
            ConnectorError: The user or the wallet rejected the connection
        """
        pass

    @abstractmethod
    async def connect_social(self, provider: SocialProvider) -> AccountInfo:
        """
        Sign in through a social identity provider

        Args:
            provider: Provider to authenticate with
        """
        pass

    @abstractmethod
    async def connect_email(self, email: str, password: str) -> AccountInfo:
        """Sign in with email and password"""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release any connector-side session"""
        pass
