from fastapi import APIRouter, Depends, Request, status

from proofquest.api.middleware.authentication.jwt_bearer import get_current_user
from proofquest.api.models.request_models import (
    LoginRequestDTO, RegisterRequestDTO, SocialLoginRequestDTO, WalletLoginRequestDTO
)
from proofquest.core.logger.logger import get_logger
from proofquest.core.service.auth.auth_service import AuthService
from proofquest.core.service.auth.models.user import User

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _auth_response(token: str, user: User) -> dict:
    return {"success": True, "token": token, "user": user.to_public()}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(dto: RegisterRequestDTO, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.register(dto.email, dto.password, dto.name)
    logger.info("User registered", extra={"user_id": user.id})
    return _auth_response(token, user)


@router.post("/login")
async def login(dto: LoginRequestDTO, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.login(dto.email, dto.password)
    logger.info("User logged in", extra={"user_id": user.id, "login_type": "email"})
    return _auth_response(token, user)


@router.post("/social")
async def social_login(dto: SocialLoginRequestDTO, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.social_login(dto.provider, email=dto.email, name=dto.name)
    logger.info("User logged in", extra={"user_id": user.id, "login_type": dto.provider.value})
    return _auth_response(token, user)


@router.post("/wallet")
async def wallet_login(dto: WalletLoginRequestDTO, auth: AuthService = Depends(get_auth_service)):
    # Wallet signatures are not checked by the mock backend
    token, user = auth.wallet_login(dto.wallet_address)
    logger.info("User logged in", extra={"user_id": user.id, "login_type": "wallet"})
    return _auth_response(token, user)


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"success": True, "user": user.to_public()}
