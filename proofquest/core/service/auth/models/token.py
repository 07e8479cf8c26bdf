from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """JWT token payload structure"""
    sub: str = Field(..., description="User id")
    email: Optional[str] = Field(None, description="User email, when known")
    exp: datetime = Field(..., description="Token expiration timestamp")
    iat: datetime = Field(..., description="Token issued at timestamp")
    jti: str = Field(..., description="Unique token identifier")
