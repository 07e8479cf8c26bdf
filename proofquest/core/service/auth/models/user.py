"""
Backend user model for the in-memory user repository
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from proofquest.core.service.session.models.identity import LoginMethod


class User(BaseModel):
    """Registered backend user"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    wallet_address: Optional[str] = None
    login_type: LoginMethod
    password_hash: Optional[str] = Field(None, exclude=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: Optional[datetime] = None

    def to_public(self) -> dict:
        """Response shape used by the auth endpoints (no credentials)"""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "walletAddress": self.wallet_address,
            "loginType": self.login_type.value,
        }
