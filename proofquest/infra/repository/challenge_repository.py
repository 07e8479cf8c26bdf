"""
In-memory challenge repository for the mock backend
"""

from typing import Iterable, List, Optional

from proofquest.core.service.progress.catalog.mock import SEED_CHALLENGES
from proofquest.core.service.progress.models.challenge import Challenge


class ChallengeRepository:
    def __init__(self, challenges: Optional[Iterable[Challenge]] = None):
        self._challenges = {c.id: c for c in (SEED_CHALLENGES if challenges is None else challenges)}

    def get(self, challenge_id: str) -> Optional[Challenge]:
        return self._challenges.get(challenge_id)

    def search(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Challenge]:
        """Exact category/difficulty filters plus substring search on title and description"""
        results = list(self._challenges.values())
        if category:
            results = [c for c in results if c.category == category]
        if difficulty:
            results = [c for c in results if c.difficulty.value == difficulty]
        if search:
            needle = search.lower()
            results = [
                c for c in results
                if needle in c.title.lower() or needle in c.description.lower()
            ]
        return results
