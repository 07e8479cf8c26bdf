from typing import Callable, Optional

import httpx

from proofquest.core.http_client import error_message
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.progress.models.progress import ProofSubmission, VerificationResult
from proofquest.core.service.progress.verifier.base import Verifier

logger = get_logger(__name__)


class HttpVerifier(Verifier):
    """Submits proofs to the backend's /proofs endpoint"""

    def __init__(self, client: httpx.AsyncClient, token_provider: Optional[Callable[[], Optional[str]]] = None):
        self.client = client
        self.token_provider = token_provider

    async def verify(self, proof: ProofSubmission) -> VerificationResult:
        token = self.token_provider() if self.token_provider else None
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        response = await self.client.post(
            "/proofs",
            json={
                "challengeId": proof.challenge_id,
                "proofFile": proof.proof_artifact_ref,
                "metadata": proof.metadata,
            },
            headers=headers,
        )

        # 422 is a rejected proof; anything else >= 400 is a service failure
        if response.status_code >= 400 and response.status_code != 422:
            logger.warning(
                "Proof submission failed",
                extra={"challenge_id": proof.challenge_id, "status_code": response.status_code}
            )
            response.raise_for_status()

        body = response.json()
        if body.get("success"):
            return VerificationResult(success=True, proof_hash=body.get("proofHash"))
        return VerificationResult(success=False, reason=error_message(response))
