import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from proofquest.core.exceptions.base import RewardUnitMismatchError

# "50 XION", "50 XION tokens", "100 XION Tokens"
_LEGACY_REWARD_RE = re.compile(r"^\s*(\d+)\s+([A-Za-z][A-Za-z0-9]*)(?:\s+tokens?)?\s*$", re.IGNORECASE)


class Reward(BaseModel):
    """Typed reward amount; amounts only add up within one unit"""
    amount: int = Field(0, ge=0)
    unit: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, value: str) -> "Reward":
        """Parse a legacy reward string such as "50 XION tokens" """
        match = _LEGACY_REWARD_RE.match(value or "")
        if not match:
            raise ValueError(f"Unrecognized reward format: {value!r}")
        return cls(amount=int(match.group(1)), unit=match.group(2).upper())

    @classmethod
    def zero(cls, unit: str) -> "Reward":
        return cls(amount=0, unit=unit)

    def __add__(self, other: "Reward") -> "Reward":
        if not isinstance(other, Reward):
            return NotImplemented
        if other.unit != self.unit:
            raise RewardUnitMismatchError(expected=self.unit, actual=other.unit)
        return Reward(amount=self.amount + other.amount, unit=self.unit)

    def __str__(self) -> str:
        return f"{self.amount} {self.unit}"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Challenge(BaseModel):
    """Catalog entry; owned by the backend, read-only on the client"""
    id: str
    title: str
    description: str = ""
    category: str
    difficulty: Difficulty = Difficulty.MEDIUM
    reward: Reward
    deadline: Optional[str] = None
    participants: int = 0
    image: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("reward", mode="before")
    @classmethod
    def parse_legacy_reward(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Reward.parse(value)
        return value

    def matches(self, filter_text: Optional[str]) -> bool:
        """Case-insensitive substring match on title, category or tags"""
        if not filter_text:
            return True
        needle = filter_text.lower()
        return (
            needle in self.title.lower()
            or needle in self.category.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )
