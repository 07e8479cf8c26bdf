import asyncio
from datetime import timedelta

import pytest

from proofquest.core.exceptions.base import (
    NotAuthenticatedError, NotFoundError, PersistenceFailedError, RewardUnitMismatchError,
    ServiceUnavailableError, ValidationError, VerificationFailedError
)
from proofquest.core.service.progress.catalog.base import ChallengeCatalog
from proofquest.core.service.progress.catalog.mock import InMemoryChallengeCatalog
from proofquest.core.service.progress.models.challenge import Reward
from proofquest.core.service.progress.models.progress import (
    ChallengeStatus, ProgressList, Rank, StartResult, UserStats, VerificationResult
)
from proofquest.core.service.progress.progress_store import ProgressStore
from proofquest.core.service.progress.verifier.base import Verifier
from proofquest.core.service.progress.verifier.mock import MockVerifier
from proofquest.core.service.session.connectors.mock import MockConnector
from proofquest.core.service.session.models.identity import Identity, LoginMethod
from proofquest.core.service.session.session_store import SessionStore
from tests.fakes import ScriptedVerifier, make_challenge, proof_for

BOB = Identity(id="0xb0b", login_method=LoginMethod.WALLET, display_handle="0xb0b")


def store_with(storage, challenges, verifier=None, **kwargs) -> ProgressStore:
    return ProgressStore(
        storage,
        InMemoryChallengeCatalog(challenges),
        verifier or MockVerifier(success_rate=1.0, delay=0, seed=3),
        reward_unit="XION",
        **kwargs
    )


class BrokenCatalog(ChallengeCatalog):
    async def list_challenges(self, filter_text=None):
        raise ConnectionError("catalog down")

    async def get_challenge(self, challenge_id):
        raise ConnectionError("catalog down")


class SlowVerifier(Verifier):
    def __init__(self, delay: float):
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def verify(self, proof):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return VerificationResult(success=True, proof_hash="0x" + "ab" * 32)


class ExplodingVerifier(Verifier):
    async def verify(self, proof):
        raise RuntimeError("socket closed")


@pytest.mark.asyncio
async def test_wallet_user_completes_challenge(storage):
    """Connect by wallet, start c1, complete it with a verified proof"""
    session_store = SessionStore(storage, MockConnector(delay=0, seed=5))
    verifier = ScriptedVerifier([VerificationResult(success=True, proof_hash="0xdeadbeef")])
    progress_store = store_with(storage, [make_challenge("c1", amount=50)], verifier)
    session_store.add_identity_listener(progress_store.switch_identity)

    identity = await session_store.connect_wallet()
    assert identity.login_method == LoginMethod.WALLET
    assert progress_store.identity_id == identity.id

    assert await progress_store.start_challenge("c1") == StartResult.STARTED
    record = progress_store.get_progress("c1")
    assert record.status == ChallengeStatus.IN_PROGRESS
    assert record.progress == 0

    completed = await progress_store.complete_challenge("c1", proof_for("c1"))

    assert completed.status == ChallengeStatus.COMPLETED
    assert completed.progress == 100
    assert completed.proof_hash == "0xdeadbeef"
    assert completed.proof_submitted is True
    assert completed.reward == Reward(amount=50, unit="XION")

    stats = await progress_store.get_user_stats()
    assert stats.completed_challenges == 1
    assert stats.total_rewards == Reward(amount=50, unit="XION")
    assert stats.current_streak == 1


@pytest.mark.asyncio
async def test_start_challenge_twice_is_idempotent(signed_in_store):
    assert await signed_in_store.start_challenge("1") == StartResult.STARTED
    before = signed_in_store.get_progress("1")

    assert await signed_in_store.start_challenge("1") == StartResult.ALREADY_STARTED
    assert signed_in_store.get_progress("1") == before
    assert len(await signed_in_store.get_user_progress()) == 1


@pytest.mark.asyncio
async def test_start_unknown_challenge(signed_in_store):
    with pytest.raises(NotFoundError):
        await signed_in_store.start_challenge("does-not-exist")
    assert await signed_in_store.get_user_progress() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("percent,expected", [
    (-20, 0), (0, 0), (42, 42), (100, 100), (250, 100),
    (42.9, 42), (10 ** 400, 100), (float("inf"), 100), (float("-inf"), 0),
])
async def test_update_progress_clamps(signed_in_store, percent, expected):
    await signed_in_store.start_challenge("1")

    record = await signed_in_store.update_progress("1", percent)

    assert record.progress == expected
    assert record.status == ChallengeStatus.IN_PROGRESS


@pytest.mark.asyncio
@pytest.mark.parametrize("percent", [float("nan"), "abc", None])
async def test_update_progress_rejects_non_numbers(signed_in_store, percent):
    await signed_in_store.start_challenge("1")
    await signed_in_store.update_progress("1", 30)

    with pytest.raises(ValidationError) as exc_info:
        await signed_in_store.update_progress("1", percent)

    assert exc_info.value.details == {"field": "percent"}
    assert signed_in_store.get_progress("1").progress == 30


@pytest.mark.asyncio
async def test_update_progress_never_moves_backwards(signed_in_store):
    await signed_in_store.start_challenge("1")
    await signed_in_store.update_progress("1", 60)

    record = await signed_in_store.update_progress("1", 30)
    assert record.progress == 60


@pytest.mark.asyncio
async def test_update_progress_leaves_completed_record(signed_in_store):
    await signed_in_store.start_challenge("1")
    completed = await signed_in_store.complete_challenge("1", proof_for("1"))

    assert await signed_in_store.update_progress("1", 10) == completed


@pytest.mark.asyncio
async def test_update_progress_requires_started_challenge(signed_in_store):
    with pytest.raises(NotFoundError):
        await signed_in_store.update_progress("1", 50)


@pytest.mark.asyncio
async def test_failed_verification_leaves_record_unchanged(storage, alice):
    verifier = ScriptedVerifier([VerificationResult(success=False, reason="Screenshot unreadable")])
    store = store_with(storage, [make_challenge("c1")], verifier)
    await store.switch_identity(alice)
    await store.start_challenge("c1")
    await store.update_progress("c1", 80)
    before = store.get_progress("c1")
    stats_before = store.stats.value

    with pytest.raises(VerificationFailedError) as exc_info:
        await store.complete_challenge("c1", proof_for("c1"))

    assert exc_info.value.reason == "Screenshot unreadable"
    assert exc_info.value.details == {"reason": "Screenshot unreadable"}
    assert "Screenshot unreadable" not in exc_info.value.user_message
    assert store.get_progress("c1") == before
    assert store.stats.value == stats_before


@pytest.mark.asyncio
async def test_retry_after_failed_verification(storage, alice):
    verifier = ScriptedVerifier([
        VerificationResult(success=False, reason="Proof verification failed"),
        VerificationResult(success=True, proof_hash="0x01"),
    ])
    store = store_with(storage, [make_challenge("c1")], verifier)
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    with pytest.raises(VerificationFailedError):
        await store.complete_challenge("c1", proof_for("c1"))
    record = await store.complete_challenge("c1", proof_for("c1"))

    assert record.proof_hash == "0x01"
    assert len(verifier.submissions) == 2


@pytest.mark.asyncio
async def test_complete_requires_started_challenge(signed_in_store):
    with pytest.raises(NotFoundError):
        await signed_in_store.complete_challenge("1", proof_for("1"))


@pytest.mark.asyncio
async def test_complete_rejects_proof_for_other_challenge(signed_in_store):
    await signed_in_store.start_challenge("1")
    with pytest.raises(ValidationError):
        await signed_in_store.complete_challenge("1", proof_for("2"))


@pytest.mark.asyncio
@pytest.mark.parametrize("count,rank", [(1, Rank.BEGINNER), (5, Rank.INTERMEDIATE), (10, Rank.ADVANCED), (20, Rank.EXPERT)])
async def test_rewards_and_rank_accumulate(storage, alice, count, rank):
    challenges = [make_challenge(f"c{i}", amount=10 + i) for i in range(count)]
    store = store_with(storage, challenges)
    await store.switch_identity(alice)

    for challenge in challenges:
        await store.start_challenge(challenge.id)
        await store.complete_challenge(challenge.id, proof_for(challenge.id))

    stats = await store.get_user_stats()
    assert stats.completed_challenges == count
    assert stats.total_challenges == count
    assert stats.total_rewards == Reward(amount=sum(10 + i for i in range(count)), unit="XION")
    assert stats.rank == rank


@pytest.mark.asyncio
async def test_reward_unit_mismatch_is_checked_before_verifying(storage, alice):
    verifier = ScriptedVerifier([VerificationResult(success=True, proof_hash="0x01")])
    store = store_with(storage, [make_challenge("c1", unit="USDC")], verifier)
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    with pytest.raises(RewardUnitMismatchError):
        await store.complete_challenge("c1", proof_for("c1"))

    assert verifier.submissions == []
    assert store.get_progress("c1").status == ChallengeStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_verifier_exception_becomes_verification_failure(storage, alice):
    store = store_with(storage, [make_challenge("c1")], ExplodingVerifier())
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    with pytest.raises(VerificationFailedError) as exc_info:
        await store.complete_challenge("c1", proof_for("c1"))

    # Internal error text stays out of the user-facing reason
    assert "socket" not in exc_info.value.reason
    assert store.get_progress("c1").status == ChallengeStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_verifier_timeout_becomes_verification_failure(storage, alice):
    store = store_with(storage, [make_challenge("c1")], SlowVerifier(delay=1), verify_timeout=0.05)
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    with pytest.raises(VerificationFailedError):
        await store.complete_challenge("c1", proof_for("c1"))
    assert store.get_progress("c1").status == ChallengeStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_same_challenge_mutations_are_serialized(storage, alice):
    verifier = SlowVerifier(delay=0.02)
    store = store_with(storage, [make_challenge("c1"), make_challenge("c2")], verifier)
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    # Two completions of the same challenge never verify at the same time
    await asyncio.gather(
        store.complete_challenge("c1", proof_for("c1")),
        store.complete_challenge("c1", proof_for("c1")),
    )
    assert verifier.max_in_flight == 1
    assert store.stats.value.completed_challenges == 1


@pytest.mark.asyncio
async def test_different_challenges_run_concurrently(storage, alice):
    verifier = SlowVerifier(delay=0.05)
    store = store_with(storage, [make_challenge("c1"), make_challenge("c2")], verifier)
    await store.switch_identity(alice)
    await store.start_challenge("c1")
    await store.start_challenge("c2")

    await asyncio.gather(
        store.complete_challenge("c1", proof_for("c1")),
        store.complete_challenge("c2", proof_for("c2")),
    )
    assert verifier.max_in_flight == 2
    assert store.stats.value.completed_challenges == 2


@pytest.mark.asyncio
async def test_concurrent_starts_create_one_record(signed_in_store):
    results = await asyncio.gather(*(signed_in_store.start_challenge("1") for _ in range(5)))

    assert results.count(StartResult.STARTED) == 1
    assert results.count(StartResult.ALREADY_STARTED) == 4


@pytest.mark.asyncio
async def test_persist_failure_keeps_in_memory_update(signed_in_store, storage):
    storage.fail_writes = True

    with pytest.raises(PersistenceFailedError):
        await signed_in_store.start_challenge("1")

    assert signed_in_store.get_progress("1").status == ChallengeStatus.IN_PROGRESS
    assert signed_in_store.stats.value.total_challenges == 1


@pytest.mark.asyncio
async def test_progress_is_persisted_per_identity(storage, progress_store, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")

    raw = await storage.get(f"progress:{alice.id}")
    assert [r.challenge_id for r in ProgressList.validate_json(raw)] == ["1"]
    stats = UserStats.model_validate_json(await storage.get(f"stats:{alice.id}"))
    assert stats.total_challenges == 1


@pytest.mark.asyncio
async def test_identity_switch_scopes_progress(storage, progress_store, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")
    await progress_store.start_challenge("2")

    await progress_store.switch_identity(BOB)
    assert await progress_store.get_user_progress() == []
    assert progress_store.stats.value.total_challenges == 0

    await progress_store.switch_identity(alice)
    assert {r.challenge_id for r in await progress_store.get_user_progress()} == {"1", "2"}
    assert progress_store.stats.value.total_challenges == 2


@pytest.mark.asyncio
async def test_sign_out_clears_progress(progress_store, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")

    await progress_store.switch_identity(None)

    assert progress_store.progress.value == []
    with pytest.raises(NotAuthenticatedError):
        await progress_store.start_challenge("1")


@pytest.mark.asyncio
async def test_corrupt_progress_loads_as_empty(storage, progress_store, alice):
    await storage.set(f"progress:{alice.id}", b"[{\"challenge_id\": 1")

    await progress_store.switch_identity(alice)

    assert await progress_store.get_user_progress() == []


@pytest.mark.asyncio
async def test_stats_recomputed_when_missing(storage, progress_store, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")
    await progress_store.complete_challenge("1", proof_for("1"))
    await storage.delete(f"stats:{alice.id}")

    await progress_store.switch_identity(None)
    await progress_store.switch_identity(alice)

    assert progress_store.stats.value.completed_challenges == 1
    assert progress_store.stats.value.total_rewards == Reward(amount=50, unit="XION")


@pytest.mark.asyncio
async def test_reload_ignores_stale_stats_after_failed_stats_write(storage, progress_store, catalog, verifier, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")
    storage.fail_write_prefixes = ("stats:",)

    with pytest.raises(PersistenceFailedError) as exc_info:
        await progress_store.complete_challenge("1", proof_for("1"))
    assert exc_info.value.details["key"] == f"stats:{alice.id}"

    reloaded = ProgressStore(storage, catalog, verifier, reward_unit="XION")
    await reloaded.switch_identity(alice)

    assert reloaded.get_progress("1").status == ChallengeStatus.COMPLETED
    assert reloaded.stats.value.completed_challenges == 1
    assert reloaded.stats.value.total_rewards == Reward(amount=50, unit="XION")


@pytest.mark.asyncio
async def test_reload_recomputes_streak_from_completion_dates(storage, progress_store, alice):
    await progress_store.switch_identity(alice)
    await progress_store.start_challenge("1")
    completed = await progress_store.complete_challenge("1", proof_for("1"))
    assert progress_store.stats.value.current_streak == 1

    ten_days = timedelta(days=10)
    old = completed.model_copy(update={
        "started_at": completed.started_at - ten_days,
        "completed_at": completed.completed_at - ten_days,
    })
    await storage.set(f"progress:{alice.id}", ProgressList.dump_json([old]))

    await progress_store.switch_identity(None)
    await progress_store.switch_identity(alice)

    assert progress_store.stats.value.current_streak == 0
    assert progress_store.stats.value.completed_challenges == 1


@pytest.mark.asyncio
async def test_cancelled_completion_rolls_back(storage, alice):
    store = store_with(storage, [make_challenge("c1")], SlowVerifier(delay=1))
    await store.switch_identity(alice)
    await store.start_challenge("c1")

    task = asyncio.create_task(store.complete_challenge("c1", proof_for("c1")))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.get_progress("c1").status == ChallengeStatus.IN_PROGRESS
    assert store.stats.value.completed_challenges == 0


@pytest.mark.asyncio
async def test_catalog_queries(signed_in_store):
    challenges = await signed_in_store.get_challenges("education")
    assert {c.id for c in challenges} == {"5", "7"}

    challenge = await signed_in_store.get_challenge("4")
    assert challenge.reward == Reward(amount=200, unit="XION")

    with pytest.raises(NotFoundError):
        await signed_in_store.get_challenge("99")


@pytest.mark.asyncio
async def test_catalog_failure_is_service_unavailable(storage, alice):
    store = ProgressStore(storage, BrokenCatalog(), MockVerifier(delay=0), reward_unit="XION")
    await store.switch_identity(alice)

    with pytest.raises(ServiceUnavailableError):
        await store.get_challenges()
    with pytest.raises(ServiceUnavailableError):
        await store.start_challenge("1")
