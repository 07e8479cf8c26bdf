"""
Derivation of UserStats from progress records. Stats are a cache: everything
here is recomputable from the records alone.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from proofquest.core.service.progress.models.challenge import Reward
from proofquest.core.service.progress.models.progress import ChallengeProgress, Rank, UserStats

# Minimum completed challenges per rank, highest first
RANK_THRESHOLDS = (
    (20, Rank.EXPERT),
    (10, Rank.ADVANCED),
    (5, Rank.INTERMEDIATE),
)


def rank_for(completed_challenges: int) -> Rank:
    for threshold, rank in RANK_THRESHOLDS:
        if completed_challenges >= threshold:
            return rank
    return Rank.BEGINNER


def current_streak(completion_times: Iterable[datetime], today: Optional[date] = None) -> int:
    """
    Consecutive days with at least one completion, counted back from the most
    recent one. A streak survives until the end of the day after its last
    completion.
    """
    today = today or datetime.now(timezone.utc).date()
    days = {t.astimezone(timezone.utc).date() for t in completion_times}
    if not days:
        return 0

    day = max(days)
    if day < today - timedelta(days=1):
        return 0

    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def compute_stats(records: List[ChallengeProgress], unit: str, today: Optional[date] = None) -> UserStats:
    completed = [r for r in records if r.is_completed]

    total_rewards = Reward.zero(unit)
    for record in completed:
        if record.reward is not None:
            total_rewards = total_rewards + record.reward

    return UserStats(
        total_challenges=len(records),
        completed_challenges=len(completed),
        total_rewards=total_rewards,
        current_streak=current_streak((r.completed_at for r in completed), today),
        rank=rank_for(len(completed)),
    )
