from typing import Iterable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from proofquest.api.middleware.logging.request_logging import RequestLoggingMiddleware
from proofquest.api.router import auth, challenges, health, proofs
from proofquest.core.exceptions.handler import GlobalErrorHandler, ServiceError
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.auth_service import AuthService
from proofquest.core.service.auth.jwt_service import JWTService
from proofquest.core.service.progress.models.challenge import Challenge
from proofquest.core.service.progress.verifier.base import Verifier
from proofquest.core.service.progress.verifier.mock import MockVerifier
from proofquest.infra.config.settings import settings
from proofquest.infra.repository.challenge_repository import ChallengeRepository
from proofquest.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)


def create_app(
    verifier: Optional[Verifier] = None,
    challenges_seed: Optional[Iterable[Challenge]] = None,
    bcrypt_rounds: Optional[int] = None,
) -> FastAPI:
    """
    Build the ProofQuest mock backend. All state lives in memory on app.state.

    Args:
        verifier: Proof verifier for /proofs (defaults to the simulated one)
        challenges_seed: Catalog contents (defaults to the seed challenges)
        bcrypt_rounds: Password hashing cost override
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="""
ProofQuest mock backend - accounts, the challenge catalog and proof verification.

## Authentication
Protected endpoints require a JWT Bearer token from one of the /api/auth endpoints.
        """,
        version=settings.APP_VERSION,
        docs_url="/",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,  # 10 minutes
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(StarletteHTTPException, GlobalErrorHandler.http_exception_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    app.state.users = UserRepository()
    app.state.challenges = ChallengeRepository(challenges_seed)
    app.state.jwt_service = JWTService()
    app.state.auth_service = AuthService(app.state.users, app.state.jwt_service, bcrypt_rounds)
    app.state.verifier = verifier or MockVerifier(
        success_rate=settings.MOCK_VERIFY_SUCCESS_RATE,
        delay=settings.MOCK_VERIFY_DELAY_SECONDS,
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(challenges.router, prefix="/api")
    app.include_router(proofs.router, prefix="/api")

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "Starting ProofQuest backend",
            extra={"service": settings.APP_NAME, "version": settings.APP_VERSION}
        )

    return app
