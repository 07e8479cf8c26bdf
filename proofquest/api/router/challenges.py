from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from proofquest.api.middleware.authentication.jwt_bearer import get_current_user
from proofquest.core.exceptions.base import NotFoundError
from proofquest.core.service.auth.models.user import User
from proofquest.infra.repository.challenge_repository import ChallengeRepository

router = APIRouter(tags=["Challenges"])


def get_challenge_repository(request: Request) -> ChallengeRepository:
    return request.app.state.challenges


def _list_response(repo: ChallengeRepository, category, difficulty, search) -> dict:
    challenges = repo.search(category=category, difficulty=difficulty, search=search)
    return {
        "success": True,
        "data": [c.model_dump(mode="json") for c in challenges],
        "total": len(challenges)
    }


@router.get("/public/challenges")
async def list_public_challenges(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    repo: ChallengeRepository = Depends(get_challenge_repository),
):
    return _list_response(repo, category, difficulty, search)


@router.get("/challenges")
async def list_challenges(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    repo: ChallengeRepository = Depends(get_challenge_repository),
    user: User = Depends(get_current_user),
):
    return _list_response(repo, category, difficulty, search)


@router.get("/challenges/{challenge_id}")
async def get_challenge(
    challenge_id: str,
    repo: ChallengeRepository = Depends(get_challenge_repository),
    user: User = Depends(get_current_user),
):
    challenge = repo.get(challenge_id)
    if challenge is None:
        raise NotFoundError("Challenge not found", details={"challenge_id": challenge_id})
    return {"success": True, "data": challenge.model_dump(mode="json")}
