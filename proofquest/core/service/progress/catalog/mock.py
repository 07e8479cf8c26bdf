import asyncio
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from proofquest.core.service.progress.catalog.base import ChallengeCatalog
from proofquest.core.service.progress.models.challenge import Challenge, Difficulty, Reward

_SEEDED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _seed(id: str, title: str, description: str, category: str, difficulty: Difficulty,
          reward: int, participants: int, image: str, requirements: List[str], tags: List[str]) -> Challenge:
    return Challenge(
        id=id,
        title=title,
        description=description,
        category=category,
        difficulty=difficulty,
        reward=Reward(amount=reward, unit="XION"),
        deadline="2024-12-31",
        participants=participants,
        image=image,
        requirements=requirements,
        tags=tags,
        created_at=_SEEDED_AT,
        updated_at=_SEEDED_AT,
    )


SEED_CHALLENGES: List[Challenge] = [
    _seed(
        "1", "Complete a 5K Run",
        "Run 5 kilometers and submit proof of completion. Track your route using any fitness app and share your achievement.",
        "Fitness", Difficulty.EASY, 50, 127, "🏃",
        ["Use a fitness tracking app", "Complete 5 kilometers", "Submit screenshot of route", "Include timestamp and distance"],
        ["fitness", "running", "health"],
    ),
    _seed(
        "2", "Learn React Native",
        "Complete a comprehensive React Native course and build a functional mobile app. Submit your final project and code repository.",
        "Programming", Difficulty.HARD, 100, 89, "💻",
        ["Complete React Native course", "Build a functional app", "Submit GitHub repository", "Include README documentation"],
        ["programming", "react-native", "mobile"],
    ),
    _seed(
        "3", "Volunteer for 10 Hours",
        "Volunteer at a local charity or community organization. Document your hours and activities with photos and testimonials.",
        "Community", Difficulty.MEDIUM, 75, 45, "🤝",
        ["Find local volunteer opportunity", "Complete 10 hours of service", "Document activities with photos", "Get supervisor signature"],
        ["community", "volunteer", "charity"],
    ),
    _seed(
        "4", "Build a Smart Contract",
        "Create and deploy a simple smart contract on XION blockchain. Include basic functionality like token transfer or voting system.",
        "Blockchain", Difficulty.HARD, 200, 23, "⛓️",
        ["Learn Solidity basics", "Design smart contract", "Deploy to XION testnet", "Submit contract address and code"],
        ["blockchain", "smart-contract", "solidity"],
    ),
    _seed(
        "5", "Read 5 Books in a Month",
        "Read 5 books from different genres and submit detailed book reviews or reading logs with your insights.",
        "Education", Difficulty.MEDIUM, 80, 67, "📚",
        ["Read 5 different books", "Write detailed reviews", "Include reading time logs", "Share key insights learned"],
        ["education", "reading", "books"],
    ),
    _seed(
        "6", "Create Digital Art",
        "Create an original digital artwork using any software. Submit the final piece and process screenshots showing your creative journey.",
        "Creative", Difficulty.EASY, 60, 156, "🎨",
        ["Use digital art software", "Create original artwork", "Document creation process", "Submit final piece and screenshots"],
        ["creative", "art", "digital"],
    ),
    _seed(
        "7", "Learn a New Language",
        "Start learning a new language and achieve basic conversational skills. Submit progress logs and practice recordings.",
        "Education", Difficulty.MEDIUM, 90, 34, "🗣️",
        ["Choose a new language", "Complete beginner course", "Practice with native speakers", "Submit progress recordings"],
        ["education", "language", "communication"],
    ),
    _seed(
        "8", "Build a Garden",
        "Start a small garden and grow your own vegetables or herbs. Document the growth process from seed to harvest.",
        "Lifestyle", Difficulty.EASY, 40, 78, "🌱",
        ["Plan and prepare garden space", "Plant seeds or seedlings", "Document growth progress", "Harvest and share results"],
        ["lifestyle", "gardening", "sustainability"],
    ),
]


class InMemoryChallengeCatalog(ChallengeCatalog):
    """Catalog over a fixed list, with optional simulated fetch latency"""

    def __init__(self, challenges: Optional[Iterable[Challenge]] = None, delay: float = 0.0):
        self._challenges = list(SEED_CHALLENGES if challenges is None else challenges)
        self.delay = delay

    async def list_challenges(self, filter_text: Optional[str] = None) -> List[Challenge]:
        if self.delay:
            await asyncio.sleep(self.delay)
        return [c for c in self._challenges if c.matches(filter_text)]

    async def get_challenge(self, challenge_id: str) -> Optional[Challenge]:
        return next((c for c in self._challenges if c.id == challenge_id), None)
