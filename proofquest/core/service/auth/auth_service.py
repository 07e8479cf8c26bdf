"""
Backend account operations: registration, email login and the social/wallet
sign-ins that create an account on first use.
"""

from typing import Optional, Tuple

import bcrypt

from proofquest.core.exceptions.handler import ServiceError, ServiceErrorCode
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.jwt_service import JWTService
from proofquest.core.service.auth.models.user import User
from proofquest.core.service.session.models.identity import LoginMethod, SocialProvider
from proofquest.infra.config.settings import get_settings
from proofquest.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)
settings = get_settings()


class AuthService:
    def __init__(self, users: UserRepository, jwt_service: JWTService, bcrypt_rounds: Optional[int] = None):
        self.users = users
        self.jwt_service = jwt_service
        self.bcrypt_rounds = bcrypt_rounds or settings.BCRYPT_ROUNDS

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode()

    @staticmethod
    def _check_password(password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        return bcrypt.checkpw(password.encode(), password_hash.encode())

    def _issue(self, user: User) -> Tuple[str, User]:
        self.users.touch_login(user)
        return self.jwt_service.create_token(user), user

    def register(self, email: str, password: str, name: str) -> Tuple[str, User]:
        if self.users.find_by_email(email):
            raise ServiceError(
                code=ServiceErrorCode.USER_EXISTS,
                message="User already exists",
                status_code=409
            )

        user = self.users.create(
            LoginMethod.EMAIL,
            email=email,
            name=name,
            password_hash=self._hash_password(password)
        )
        return self._issue(user)

    def login(self, email: str, password: str) -> Tuple[str, User]:
        user = self.users.find_by_email(email)
        if user is None or not self._check_password(password, user.password_hash):
            logger.info("Login rejected", extra={"email": email})
            raise ServiceError(
                code=ServiceErrorCode.INVALID_CREDENTIALS,
                message="Invalid credentials",
                status_code=401
            )
        return self._issue(user)

    def social_login(self, provider: SocialProvider, email: Optional[str] = None,
                     name: Optional[str] = None) -> Tuple[str, User]:
        """Sign in with a provider profile, creating the account on first use"""
        email = (email or f"user@{provider.value}.com").lower()
        user = self.users.find_by_email(email)
        if user is None:
            user = self.users.create(
                LoginMethod.SOCIAL,
                email=email,
                name=name or f"{provider.value.capitalize()} User"
            )
        return self._issue(user)

    def wallet_login(self, wallet_address: str) -> Tuple[str, User]:
        user = self.users.find_by_wallet(wallet_address)
        if user is None:
            user = self.users.create(
                LoginMethod.WALLET,
                wallet_address=wallet_address,
                name=f"Wallet {wallet_address[:6]}...{wallet_address[-4:]}"
            )
        return self._issue(user)
