from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from proofquest.core.http_client import error_message
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.session.connectors.base import (
    AccountInfo, Connector, ConnectorError, WalletInfo
)
from proofquest.core.service.session.models.identity import SocialProvider

logger = get_logger(__name__)

# Returns (wallet address, signature over the login message)
WalletSigner = Callable[[], Awaitable[Tuple[str, str]]]
# Returns the provider's OAuth token for the given provider
SocialTokenProvider = Callable[[SocialProvider], Awaitable[Dict[str, str]]]


class HttpConnector(Connector):
    """
    Connector that authenticates against the ProofQuest backend
    (`/auth/login`, `/auth/social`, `/auth/wallet`).

    Wallet signing and social OAuth happen on the device; they are injected as
    async callables so the platform SDKs stay outside this package.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        wallet_signer: Optional[WalletSigner] = None,
        social_token_provider: Optional[SocialTokenProvider] = None,
    ):
        self.client = client
        self.wallet_signer = wallet_signer
        self.social_token_provider = social_token_provider

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Auth request failed",
                extra={"path": path, "error": str(e)}
            )
            raise ConnectorError(f"Auth service unreachable: {e}") from e

        if response.status_code >= 400:
            raise ConnectorError(error_message(response))

        body = response.json()
        if not body.get("token") or not isinstance(body.get("user"), dict):
            raise ConnectorError("Malformed auth response")
        return body

    def _account(self, body: Dict[str, Any]) -> AccountInfo:
        user = body["user"]
        return AccountInfo(
            external_user_id=str(user["id"]),
            email=user.get("email"),
            name=user.get("name"),
            access_token=body["token"],
        )

    async def connect_wallet(self) -> WalletInfo:
        if self.wallet_signer is None:
            raise ConnectorError("No wallet is available on this device")

        address, signature = await self.wallet_signer()
        body = await self._post(
            "/auth/wallet",
            {"walletAddress": address, "signature": signature}
        )
        return WalletInfo(
            address=body["user"].get("walletAddress") or address,
            access_token=body["token"],
        )

    async def connect_social(self, provider: SocialProvider) -> AccountInfo:
        if self.social_token_provider is None:
            raise ConnectorError(f"{provider.value} sign-in is not configured")

        profile = await self.social_token_provider(provider)
        body = await self._post(
            "/auth/social",
            {
                "provider": provider.value,
                "token": profile.get("token"),
                "email": profile.get("email"),
                "name": profile.get("name"),
            }
        )
        return self._account(body)

    async def connect_email(self, email: str, password: str) -> AccountInfo:
        body = await self._post("/auth/login", {"email": email, "password": password})
        return self._account(body)

    async def disconnect(self) -> None:
        # Backend tokens are stateless JWTs; dropping the session is enough
        return None
