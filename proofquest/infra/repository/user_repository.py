"""
In-memory user repository for the mock backend
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.models.user import User
from proofquest.core.service.session.models.identity import LoginMethod

logger = get_logger(__name__)


class UserRepository:
    """Users keyed by id, with email and wallet lookups"""

    def __init__(self):
        self._users: Dict[str, User] = {}

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def find_by_wallet(self, wallet_address: str) -> Optional[User]:
        wallet_address = wallet_address.lower()
        return next(
            (u for u in self._users.values()
             if u.wallet_address and u.wallet_address.lower() == wallet_address),
            None
        )

    def create(self, login_type: LoginMethod, **fields) -> User:
        user = User(id=self._new_id(), login_type=login_type, **fields)
        self._users[user.id] = user
        logger.info(
            "User created",
            extra={"user_id": user.id, "login_type": login_type.value}
        )
        return user

    def touch_login(self, user: User) -> User:
        user.last_login_at = datetime.now(timezone.utc)
        return user

    def __len__(self) -> int:
        return len(self._users)
