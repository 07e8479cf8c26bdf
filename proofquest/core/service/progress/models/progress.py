from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from proofquest.core.service.progress.models.challenge import Reward


class ChallengeStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class StartResult(str, Enum):
    """Outcome of start_challenge; ALREADY_STARTED is expected, not an error"""
    STARTED = "started"
    ALREADY_STARTED = "already-started"


class Rank(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class ChallengeProgress(BaseModel):
    """One user's state on one challenge"""
    challenge_id: str
    status: ChallengeStatus = ChallengeStatus.NOT_STARTED
    progress: int = Field(0, ge=0, le=100)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    proof_submitted: bool = False
    proof_hash: Optional[str] = None
    reward: Optional[Reward] = Field(None, description="Reward granted on completion")

    @model_validator(mode="after")
    def check_status(self) -> "ChallengeProgress":
        if self.status == ChallengeStatus.COMPLETED:
            if self.progress != 100 or not self.proof_hash or self.completed_at is None:
                raise ValueError("Completed progress needs progress=100, a proof hash and a completion time")
        else:
            if self.completed_at is not None:
                raise ValueError("Only completed progress carries a completion time")
            if self.status == ChallengeStatus.NOT_STARTED and self.progress != 0:
                raise ValueError("Progress must be 0 before the challenge is started")
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == ChallengeStatus.COMPLETED


class UserStats(BaseModel):
    """Aggregates derived from the progress records"""
    total_challenges: int = 0
    completed_challenges: int = 0
    total_rewards: Reward
    current_streak: int = 0
    rank: Rank = Rank.BEGINNER

    @classmethod
    def empty(cls, unit: str) -> "UserStats":
        return cls(total_rewards=Reward.zero(unit))


class ProofSubmission(BaseModel):
    """Payload handed to the verifier"""
    challenge_id: str
    proof_artifact_ref: str = Field(..., min_length=1, description="URI of the uploaded proof file")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VerificationResult(BaseModel):
    success: bool
    proof_hash: Optional[str] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_outcome(self) -> "VerificationResult":
        if self.success and not self.proof_hash:
            raise ValueError("Successful verification must return a proof hash")
        return self


ProgressList = TypeAdapter(List[ChallengeProgress])
