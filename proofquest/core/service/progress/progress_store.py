import asyncio
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from proofquest.core.exceptions.base import (
    NotAuthenticatedError, NotFoundError, PersistenceFailedError, RewardUnitMismatchError,
    ServiceUnavailableError, ValidationError, VerificationFailedError
)
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.locks import KeyedLock
from proofquest.core.service.observable import Observable
from proofquest.core.service.progress.catalog.base import ChallengeCatalog
from proofquest.core.service.progress.models.challenge import Challenge
from proofquest.core.service.progress.models.progress import (
    ChallengeProgress, ChallengeStatus, ProgressList, ProofSubmission, StartResult, UserStats
)
from proofquest.core.service.progress.stats import compute_stats
from proofquest.core.service.progress.verifier.base import Verifier
from proofquest.core.service.session.models.identity import Identity
from proofquest.infra.config.settings import get_settings
from proofquest.infra.storage.base import SecureStorage

logger = get_logger(__name__)
settings = get_settings()


class ProgressStore:
    """
    Per-identity challenge progress and the stats derived from it.

    Mutations on the same challenge id are serialized; different ids run
    concurrently. Every mutation is applied in memory first, then persisted;
    a failed write raises PersistenceFailedError but keeps the in-memory
    update.
    """

    PROGRESS_KEY_PREFIX = "progress:"
    STATS_KEY_PREFIX = "stats:"

    def __init__(
        self,
        storage: SecureStorage,
        catalog: ChallengeCatalog,
        verifier: Verifier,
        reward_unit: Optional[str] = None,
        verify_timeout: Optional[float] = None,
    ):
        self.storage = storage
        self.catalog = catalog
        self.verifier = verifier
        self.reward_unit = reward_unit or settings.REWARD_UNIT
        self.verify_timeout = verify_timeout
        self.progress: Observable[List[ChallengeProgress]] = Observable([])
        self.stats: Observable[UserStats] = Observable(UserStats.empty(self.reward_unit))
        self._records: Dict[str, ChallengeProgress] = {}
        self._identity_id: Optional[str] = None
        # Bumped on every identity switch so in-flight work can tell it is stale
        self._generation = 0
        self._locks = KeyedLock()
        self._write_lock = asyncio.Lock()

    @property
    def identity_id(self) -> Optional[str]:
        return self._identity_id

    def _progress_key(self, identity_id: str) -> str:
        return f"{self.PROGRESS_KEY_PREFIX}{identity_id}"

    def _stats_key(self, identity_id: str) -> str:
        return f"{self.STATS_KEY_PREFIX}{identity_id}"

    # Identity binding

    async def switch_identity(self, identity: Optional[Identity]) -> None:
        """Load the given identity's progress, or clear everything for None"""
        self._generation += 1
        generation = self._generation
        self._identity_id = identity.id if identity else None
        self._records = {}
        self.progress.set([])
        self.stats.set(UserStats.empty(self.reward_unit))

        if identity is None:
            return

        records = await self._load_records(identity.id)
        if generation != self._generation:
            return

        self._records = {r.challenge_id: r for r in records}
        # The stats blob is a cache for other readers; records are authoritative
        self.progress.set(list(self._records.values()))
        self.stats.set(compute_stats(records, self.reward_unit))
        logger.info(
            "Progress loaded",
            extra={"identity_id": identity.id, "records": len(records)}
        )

    async def _load_records(self, identity_id: str) -> List[ChallengeProgress]:
        key = self._progress_key(identity_id)
        try:
            raw = await self.storage.get(key)
            return ProgressList.validate_json(raw) if raw else []
        except (PydanticValidationError, ValueError) as e:
            logger.warning("Discarding corrupt progress", extra={"key": key, "error": str(e)})
        except Exception as e:
            logger.error("Failed to load progress", extra={"key": key, "error": str(e)})
        return []

    def _require_identity(self) -> int:
        if self._identity_id is None:
            raise NotAuthenticatedError()
        return self._generation

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise NotAuthenticatedError("Signed-in identity changed during the operation")

    # Catalog

    async def get_challenges(self, filter_text: Optional[str] = None) -> List[Challenge]:
        try:
            return await self.catalog.list_challenges(filter_text)
        except Exception as e:
            logger.error("Error fetching challenges", extra={"filter": filter_text, "error": str(e)})
            raise ServiceUnavailableError("Failed to fetch challenges") from e

    async def get_challenge(self, challenge_id: str) -> Challenge:
        try:
            challenge = await self.catalog.get_challenge(challenge_id)
        except Exception as e:
            logger.error("Error fetching challenge", extra={"challenge_id": challenge_id, "error": str(e)})
            raise ServiceUnavailableError("Failed to fetch challenge") from e

        if challenge is None:
            raise NotFoundError(f"Challenge {challenge_id} not found", details={"challenge_id": challenge_id})
        return challenge

    # Reads

    async def get_user_progress(self) -> List[ChallengeProgress]:
        return list(self.progress.value)

    async def get_user_stats(self) -> UserStats:
        return self.stats.value

    def get_progress(self, challenge_id: str) -> Optional[ChallengeProgress]:
        return self._records.get(challenge_id)

    def _require_record(self, challenge_id: str) -> ChallengeProgress:
        record = self._records.get(challenge_id)
        if record is None:
            raise NotFoundError(
                f"No progress for challenge {challenge_id}",
                details={"challenge_id": challenge_id}
            )
        return record

    # Mutations

    async def start_challenge(self, challenge_id: str) -> StartResult:
        generation = self._require_identity()

        async with self._locks.hold(challenge_id):
            if challenge_id in self._records:
                logger.info("Challenge already started", extra={"challenge_id": challenge_id})
                return StartResult.ALREADY_STARTED

            await self.get_challenge(challenge_id)
            self._check_generation(generation)

            record = ChallengeProgress(
                challenge_id=challenge_id,
                status=ChallengeStatus.IN_PROGRESS,
                progress=0,
                started_at=datetime.now(timezone.utc),
            )
            await self._commit(record, generation)

        logger.info("Challenge started", extra={"challenge_id": challenge_id, "identity_id": self._identity_id})
        return StartResult.STARTED

    @staticmethod
    def _clamp_percent(percent) -> int:
        if isinstance(percent, int):
            return max(0, min(100, int(percent)))
        try:
            value = float(percent)
        except (TypeError, ValueError):
            raise ValidationError("Progress must be a number", field="percent")
        if math.isnan(value):
            raise ValidationError("Progress must be a number", field="percent")
        return int(max(0.0, min(100.0, value)))

    async def update_progress(self, challenge_id: str, percent: int) -> ChallengeProgress:
        """
        Record progress. Values are clamped to [0, 100] and never move an
        in-progress record backwards. Status is never changed here, even at
        100; completion goes through complete_challenge. Non-numeric and NaN
        values raise ValidationError.
        """
        generation = self._require_identity()
        clamped = self._clamp_percent(percent)

        async with self._locks.hold(challenge_id):
            record = self._require_record(challenge_id)

            if record.status != ChallengeStatus.IN_PROGRESS or clamped <= record.progress:
                if clamped < record.progress:
                    logger.debug(
                        "Ignoring progress decrease",
                        extra={"challenge_id": challenge_id, "current": record.progress, "requested": clamped}
                    )
                return record

            updated = record.model_copy(update={"progress": clamped})
            await self._commit(updated, generation)
            return updated

    async def complete_challenge(self, challenge_id: str, proof: ProofSubmission) -> ChallengeProgress:
        """
        Verify a proof and mark the challenge completed.

        Raises:
            NotFoundError: The challenge was never started
            RewardUnitMismatchError: The reward cannot be added to the balance
            VerificationFailedError: The verifier rejected the proof or failed;
                the record is unchanged and the call may be retried
            PersistenceFailedError: The completion is applied but not saved
        """
        if proof.challenge_id != challenge_id:
            raise ValidationError("Proof was submitted for a different challenge", field="challenge_id")

        generation = self._require_identity()

        async with self._locks.hold(challenge_id):
            record = self._require_record(challenge_id)
            challenge = await self.get_challenge(challenge_id)
            if challenge.reward.unit != self.reward_unit:
                raise RewardUnitMismatchError(expected=self.reward_unit, actual=challenge.reward.unit)

            result = await self._verify(proof)
            if not result.success:
                reason = result.reason or "Proof verification failed"
                logger.info(
                    "Proof rejected",
                    extra={"challenge_id": challenge_id, "reason": reason}
                )
                raise VerificationFailedError(reason)

            self._check_generation(generation)
            updated = ChallengeProgress(
                challenge_id=challenge_id,
                status=ChallengeStatus.COMPLETED,
                progress=100,
                started_at=record.started_at,
                completed_at=datetime.now(timezone.utc),
                proof_submitted=True,
                proof_hash=result.proof_hash,
                reward=challenge.reward,
            )
            await self._commit(updated, generation)

        stats = self.stats.value
        logger.info(
            "Challenge completed",
            extra={
                "challenge_id": challenge_id,
                "proof_hash": updated.proof_hash,
                "completed_challenges": stats.completed_challenges,
                "rank": stats.rank.value
            }
        )
        return updated

    async def _verify(self, proof: ProofSubmission):
        try:
            if self.verify_timeout:
                return await asyncio.wait_for(self.verifier.verify(proof), timeout=self.verify_timeout)
            return await self.verifier.verify(proof)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Proof verification timed out",
                extra={"challenge_id": proof.challenge_id, "timeout": self.verify_timeout}
            )
            raise VerificationFailedError("Verification timed out") from e
        except Exception as e:
            logger.error(
                "Verifier error",
                extra={"challenge_id": proof.challenge_id, "error": str(e)}
            )
            raise VerificationFailedError("Verifier unavailable") from e

    # State application and persistence

    def _apply(self, challenge_id: str, record: Optional[ChallengeProgress]) -> None:
        if record is None:
            self._records.pop(challenge_id, None)
        else:
            self._records[challenge_id] = record
        records = list(self._records.values())
        self.progress.set(records)
        self.stats.set(compute_stats(records, self.reward_unit))

    async def _commit(self, record: ChallengeProgress, generation: int) -> None:
        previous = self._records.get(record.challenge_id)
        self._apply(record.challenge_id, record)
        try:
            await self._persist(generation)
        except asyncio.CancelledError:
            self._apply(record.challenge_id, previous)
            logger.info("Mutation cancelled, rolled back", extra={"challenge_id": record.challenge_id})
            try:
                await self._persist(generation)
            except PersistenceFailedError:
                pass  # already logged by _persist
            raise

    async def _persist(self, generation: int) -> None:
        async with self._write_lock:
            if generation != self._generation or self._identity_id is None:
                logger.warning("Skipping save for a previous identity")
                return

            identity_id = self._identity_id
            writes = (
                (self._progress_key(identity_id), ProgressList.dump_json(list(self._records.values()))),
                (self._stats_key(identity_id), self.stats.value.model_dump_json().encode()),
            )
            for key, value in writes:
                try:
                    await self.storage.set(key, value)
                except Exception as e:
                    logger.error("Failed to save progress", extra={"key": key, "error": str(e)})
                    raise PersistenceFailedError("Failed to save progress", key=key) from e
