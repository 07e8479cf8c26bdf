import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from proofquest.core.exceptions.handler import ServiceError, ServiceErrorCode
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.models.token import TokenPayload
from proofquest.core.service.auth.models.user import User
from proofquest.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class JWTService:
    """Issues and verifies the backend's bearer tokens"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_days: Optional[int] = None,
    ):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.expire_days = expire_days or settings.ACCESS_TOKEN_EXPIRE_DAYS

    def create_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + (expires_delta or timedelta(days=self.expire_days))

        payload = TokenPayload(
            sub=user.id,
            email=user.email,
            exp=expires_at,
            iat=issued_at,
            jti=str(uuid.uuid4())
        )

        return jwt.encode(
            payload.model_dump(),
            self.secret_key,
            algorithm=self.algorithm
        )

    def verify_token(self, token: str) -> TokenPayload:
        """
        Verify a JWT token and return its payload
        Raises ServiceError (401) if the token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm]
            )
            return TokenPayload(**payload)

        except ExpiredSignatureError:
            logger.info("Token expired")
            raise ServiceError(
                code=ServiceErrorCode.TOKEN_EXPIRED,
                message="Token has expired",
                status_code=401
            )

        except InvalidTokenError as e:
            logger.warning("Invalid token", extra={"error": str(e)})
            raise ServiceError(
                code=ServiceErrorCode.INVALID_TOKEN,
                message="Invalid token",
                status_code=401
            )
