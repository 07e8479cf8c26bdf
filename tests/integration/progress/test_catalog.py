import pytest

from proofquest.core.service.progress.catalog.mock import SEED_CHALLENGES, InMemoryChallengeCatalog
from proofquest.infra.repository.challenge_repository import ChallengeRepository


@pytest.mark.asyncio
async def test_lists_all_without_filter(catalog):
    challenges = await catalog.list_challenges()
    assert [c.id for c in challenges] == [str(i) for i in range(1, 9)]


@pytest.mark.asyncio
@pytest.mark.parametrize("filter_text,expected", [
    ("RUN", {"1"}),                  # title
    ("blockchain", {"4"}),           # category
    ("sustainability", {"8"}),       # tag
    ("nothing-matches", set()),
])
async def test_filter_matches_title_category_and_tags(catalog, filter_text, expected):
    challenges = await catalog.list_challenges(filter_text)
    assert {c.id for c in challenges} == expected


@pytest.mark.asyncio
async def test_get_unknown_challenge_returns_none(catalog):
    assert await catalog.get_challenge("42") is None


@pytest.mark.asyncio
async def test_custom_catalog_contents():
    catalog = InMemoryChallengeCatalog(SEED_CHALLENGES[:2])
    assert len(await catalog.list_challenges()) == 2


def test_seed_rewards_share_one_unit():
    assert {c.reward.unit for c in SEED_CHALLENGES} == {"XION"}


def test_repository_filters():
    repo = ChallengeRepository()

    assert {c.id for c in repo.search(category="Education")} == {"5", "7"}
    assert {c.id for c in repo.search(difficulty="Hard")} == {"2", "4"}
    assert {c.id for c in repo.search(search="kilometers")} == {"1"}
    assert [c.id for c in repo.search(category="Education", difficulty="Medium", search="language")] == ["7"]
    assert repo.get("3").title == "Volunteer for 10 Hours"
    assert repo.get("nope") is None
