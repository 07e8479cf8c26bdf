from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LoginMethod(str, Enum):
    """How the identity authenticated"""
    WALLET = "wallet"
    SOCIAL = "social"
    EMAIL = "email"


class SocialProvider(str, Enum):
    GOOGLE = "google"
    APPLE = "apple"
    FACEBOOK = "facebook"


class AuthStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"


class Identity(BaseModel):
    """The authenticated user as seen by the session layer"""
    id: str = Field(..., min_length=1, description="Opaque unique identifier")
    login_method: LoginMethod
    provider: Optional[SocialProvider] = Field(None, description="Set only for social logins")
    display_handle: str = Field(..., min_length=1, description="Wallet address, email, or provider name")
    name: Optional[str] = None
    email: Optional[str] = None

    @model_validator(mode="after")
    def check_login_method(self) -> "Identity":
        if self.login_method == LoginMethod.SOCIAL:
            if self.provider is None:
                raise ValueError("Social identities require a provider")
            if self.display_handle != self.provider.value:
                raise ValueError("Social identities are displayed by provider name")
        elif self.provider is not None:
            raise ValueError(f"{self.login_method.value} identities cannot carry a social provider")

        if self.login_method == LoginMethod.EMAIL and self.display_handle != self.email:
            raise ValueError("Email identities are displayed by their email address")
        return self

    @property
    def wallet_address(self) -> Optional[str]:
        return self.display_handle if self.login_method == LoginMethod.WALLET else None


class Session(BaseModel):
    """Persisted, restorable form of an Identity"""
    identity: Identity
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    access_token: Optional[str] = Field(None, description="Backend bearer token, when the connector issued one")

    @field_validator("issued_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Sessions written without an offset are read as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, max_age: timedelta) -> bool:
        return datetime.now(timezone.utc) - self.issued_at > max_age


class AuthState(BaseModel):
    """Observable authentication state"""
    status: AuthStatus = AuthStatus.UNAUTHENTICATED
    identity: Optional[Identity] = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == AuthStatus.AUTHENTICATED

    @classmethod
    def unauthenticated(cls) -> "AuthState":
        return cls()

    @classmethod
    def connecting(cls) -> "AuthState":
        return cls(status=AuthStatus.CONNECTING)

    @classmethod
    def authenticated(cls, identity: Identity) -> "AuthState":
        return cls(status=AuthStatus.AUTHENTICATED, identity=identity)
