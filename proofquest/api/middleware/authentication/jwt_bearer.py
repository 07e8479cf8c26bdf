from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from proofquest.core.exceptions.handler import ServiceError, ServiceErrorCode
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.models.user import User

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolve the bearer token to a registered user, or fail with 401"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ServiceError(
            code=ServiceErrorCode.NOT_AUTHENTICATED,
            message="Access token required",
            status_code=401
        )

    payload = request.app.state.jwt_service.verify_token(credentials.credentials)

    user = request.app.state.users.get(payload.sub)
    if user is None:
        logger.warning("Token for unknown user", extra={"user_id": payload.sub})
        raise ServiceError(
            code=ServiceErrorCode.INVALID_TOKEN,
            message="Invalid token",
            status_code=401
        )
    return user
