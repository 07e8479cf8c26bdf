from typing import Callable, List, Optional

import httpx
from pydantic import ValidationError

from proofquest.core.http_client import error_message
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.progress.catalog.base import CatalogError, ChallengeCatalog
from proofquest.core.service.progress.models.challenge import Challenge

logger = get_logger(__name__)


class HttpChallengeCatalog(ChallengeCatalog):
    """
    Catalog backed by the ProofQuest API.
    Listing uses the public endpoint; single lookups send the session's
    bearer token.
    """

    def __init__(self, client: httpx.AsyncClient, token_provider: Optional[Callable[[], Optional[str]]] = None):
        self.client = client
        self.token_provider = token_provider

    def _auth_headers(self) -> dict:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def list_challenges(self, filter_text: Optional[str] = None) -> List[Challenge]:
        try:
            response = await self.client.get("/public/challenges")
        except httpx.HTTPError as e:
            logger.warning("Catalog request failed", extra={"error": str(e)})
            raise CatalogError(f"Catalog unreachable: {e}") from e

        if response.status_code >= 400:
            raise CatalogError(error_message(response))

        try:
            challenges = [Challenge.model_validate(item) for item in response.json()["data"]]
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise CatalogError(f"Malformed catalog response: {e}") from e

        # The backend search covers title and description, not category or tags,
        # so filtering happens here
        return [c for c in challenges if c.matches(filter_text)]

    async def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        try:
            response = await self.client.get(f"/challenges/{challenge_id}", headers=self._auth_headers())
        except httpx.HTTPError as e:
            logger.warning(
                "Catalog request failed",
                extra={"challenge_id": challenge_id, "error": str(e)}
            )
            raise CatalogError(f"Catalog unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise CatalogError(error_message(response))

        try:
            return Challenge.model_validate(response.json()["data"])
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise CatalogError(f"Malformed catalog response: {e}") from e
