"""
Request DTOs for API endpoints.
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from proofquest.core.service.session.models.identity import SocialProvider
from proofquest.core.service.session.validators import CredentialValidator


class RegisterRequestDTO(BaseModel):
    """Request model for email/password registration."""

    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")
    name: str = Field(..., min_length=2, max_length=100, description="Display name")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        ok, error = CredentialValidator.validate_email(v)
        if not ok:
            raise ValueError(error)
        return CredentialValidator.normalize_email(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        ok, error = CredentialValidator.validate_password(v)
        if not ok:
            raise ValueError(error)
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class LoginRequestDTO(BaseModel):
    """Request model for email/password login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return CredentialValidator.normalize_email(v)


class SocialLoginRequestDTO(BaseModel):
    """Request model for social login; the OAuth token is checked on the device."""

    provider: SocialProvider
    token: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @field_validator('provider', mode='before')
    @classmethod
    def lower_provider(cls, v):
        return v.lower() if isinstance(v, str) else v


class WalletLoginRequestDTO(BaseModel):
    """Request model for wallet login."""

    wallet_address: str = Field(..., alias="walletAddress", min_length=1, max_length=256)
    signature: str = Field(..., min_length=1)

    model_config = {"populate_by_name": True}

    @field_validator('wallet_address')
    @classmethod
    def validate_wallet_address(cls, v):
        v = v.strip()
        if not re.match(r'^0x[a-fA-F0-9]{40}$', v):
            raise ValueError("Invalid wallet address format")
        return v


class ProofRequestDTO(BaseModel):
    """Request model for proof submission."""

    challenge_id: str = Field(..., alias="challengeId", min_length=1)
    proof_file: str = Field(..., alias="proofFile", min_length=1, description="Reference to the proof artifact")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}
