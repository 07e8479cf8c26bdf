from datetime import datetime

from fastapi import APIRouter, Request, status

from proofquest.infra.config.settings import settings

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """Liveness plus the size of the in-memory stores."""
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "users": len(request.app.state.users),
        "timestamp": datetime.utcnow().isoformat() + "Z"
    }
