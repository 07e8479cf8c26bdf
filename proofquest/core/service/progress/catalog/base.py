from abc import ABC, abstractmethod
from typing import List, Optional

from proofquest.core.service.progress.models.challenge import Challenge


class CatalogError(Exception):
    """Raised when the challenge catalog cannot be read"""


class ChallengeCatalog(ABC):
    """Read-only source of challenge definitions"""

    @abstractmethod
    async def list_challenges(self, filter_text: Optional[str] = None) -> List[Challenge]:
        """
        List challenges, optionally filtered

        Args:
            filter_text: Case-insensitive substring matched against title,
                category and tags
        """
        pass

    @abstractmethod
    async def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        """Get one challenge, or None when the id is unknown"""
        pass
