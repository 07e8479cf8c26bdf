from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "ProofQuest"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Security Settings
    JWT_SECRET_KEY: str = "proofquest-development-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    MIN_PASSWORD_LENGTH: int = 8  # shared by client-side validation and /auth/register
    BCRYPT_ROUNDS: int = 12

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:8081",  # Expo dev server
        "http://localhost:19006",
    ]

    # Backend selection for connectors, verifier and catalog ("mock" or "http")
    BACKEND_MODE: str = "mock"
    API_BASE_URL: str = "http://localhost:3001/api"

    # HTTP client
    HTTP_DEFAULT_TIMEOUT: float = 10.0
    HTTP_VERIFIER_TIMEOUT: float = 30.0
    HTTP_MAX_CONNECTIONS: int = 10
    HTTP_MAX_KEEPALIVE_CONNECTIONS: int = 5

    # Redis Settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10

    # Secure storage
    STORAGE_BACKEND: str = "memory"  # memory or redis
    STORAGE_KEY_PREFIX: str = "proofquest:"
    STORAGE_ENCRYPTION_KEY: Optional[str] = None  # urlsafe base64 Fernet key

    # Session Settings
    SESSION_MAX_AGE_DAYS: int = 7
    CONNECT_TIMEOUT_SECONDS: Optional[float] = 30.0

    # Progress Settings
    REWARD_UNIT: str = "XION"
    VERIFY_TIMEOUT_SECONDS: Optional[float] = 60.0

    # Mock collaborators
    MOCK_CONNECT_DELAY_SECONDS: float = 1.0
    MOCK_VERIFY_DELAY_SECONDS: float = 2.0
    MOCK_VERIFY_SUCCESS_RATE: float = 0.8
    MOCK_CATALOG_DELAY_SECONDS: float = 0.5
    MOCK_CHAIN_ID: str = "xion-1"

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
