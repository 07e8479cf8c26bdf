import asyncio
import random
from typing import Optional

from proofquest.core.logger.logger import get_logger
from proofquest.core.service.progress.models.progress import ProofSubmission, VerificationResult
from proofquest.core.service.progress.verifier.base import Verifier

logger = get_logger(__name__)


class MockVerifier(Verifier):
    """
    Simulated zkTLS verification: succeeds with probability `success_rate`
    after `delay` seconds and returns a random 32-byte hex proof hash.
    """

    def __init__(self, success_rate: float = 0.8, delay: float = 2.0, seed: Optional[int] = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.delay = delay
        self._random = random.Random(seed)

    async def verify(self, proof: ProofSubmission) -> VerificationResult:
        if self.delay:
            await asyncio.sleep(self.delay)

        if self._random.random() < self.success_rate:
            proof_hash = "0x" + "%064x" % self._random.getrandbits(256)
            logger.debug(
                "Mock proof verified",
                extra={"challenge_id": proof.challenge_id, "proof_hash": proof_hash}
            )
            return VerificationResult(success=True, proof_hash=proof_hash)

        return VerificationResult(success=False, reason="Proof verification failed")
