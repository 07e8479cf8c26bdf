from fastapi import APIRouter, Depends, Request

from proofquest.api.middleware.authentication.jwt_bearer import get_current_user
from proofquest.api.models.request_models import ProofRequestDTO
from proofquest.core.exceptions.base import NotFoundError
from proofquest.core.exceptions.handler import ServiceError, ServiceErrorCode
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.models.user import User
from proofquest.core.service.progress.models.progress import ProofSubmission

logger = get_logger(__name__)

router = APIRouter(prefix="/proofs", tags=["Proofs"])


@router.post("")
async def submit_proof(request: Request, dto: ProofRequestDTO, user: User = Depends(get_current_user)):
    """
    Verify a proof for a challenge.
    A rejected proof is a 422 VERIFICATION_FAILED error; clients may resubmit.
    """
    if request.app.state.challenges.get(dto.challenge_id) is None:
        raise NotFoundError("Challenge not found", details={"challenge_id": dto.challenge_id})

    result = await request.app.state.verifier.verify(
        ProofSubmission(
            challenge_id=dto.challenge_id,
            proof_artifact_ref=dto.proof_file,
            metadata=dto.metadata,
        )
    )

    if not result.success:
        logger.info(
            "Proof rejected",
            extra={"user_id": user.id, "challenge_id": dto.challenge_id, "reason": result.reason}
        )
        raise ServiceError(
            code=ServiceErrorCode.VERIFICATION_FAILED,
            message=result.reason or "Proof verification failed",
            status_code=422
        )

    logger.info(
        "Proof verified",
        extra={"user_id": user.id, "challenge_id": dto.challenge_id, "proof_hash": result.proof_hash}
    )
    return {"success": True, "proofHash": result.proof_hash}
