"""
Proof verification abstraction. The actual proof protocol (zkTLS or manual
review) lives behind this interface.
"""

from abc import ABC, abstractmethod

from proofquest.core.service.progress.models.progress import ProofSubmission, VerificationResult


class Verifier(ABC):
    """Abstract proof verifier"""

    @abstractmethod
    async def verify(self, proof: ProofSubmission) -> VerificationResult:
        """
        Verify a proof of completion

        Args:
            proof: Challenge id, reference to the uploaded artifact, metadata

        Returns:
            VerificationResult: success with a proof hash, or failure with a
            reason. Retrying with the same proof is safe.

        Raises:
            Exception: Transport or service failures; the progress store
            wraps these
        """
        pass
