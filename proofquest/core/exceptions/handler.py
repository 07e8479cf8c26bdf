"""
Centralized error handling.
Store operations raise ServiceError subclasses; the API layer turns them into
the standard error envelope.
"""

import traceback
from typing import Dict, Any, Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime

from proofquest.core.logger.logger import get_logger
from proofquest.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class ServiceErrorCode:
    """Standard error codes for services"""

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FORMAT = "INVALID_FORMAT"

    # Authentication
    CONNECTION_FAILED = "CONNECTION_FAILED"
    BUSY = "BUSY"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    USER_EXISTS = "USER_EXISTS"

    # Challenges and proofs
    NOT_FOUND = "NOT_FOUND"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    REWARD_UNIT_MISMATCH = "REWARD_UNIT_MISMATCH"

    # System
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"


class ServiceError(Exception):
    """
    Standardized service error for internal use.
    Gets converted to proper HTTP response by error handler.
    """

    # Safe to show to an end user; never carries internal error text
    user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.context = context or {}
        super().__init__(message)


class ErrorResponseBuilder:
    """Builds the error envelope shared by every endpoint"""

    @staticmethod
    def build_error_response(
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.utcnow().isoformat() + "Z"
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"success": False, "error": error}


# Error codes for framework-raised HTTP errors (unknown routes, bad methods)
HTTP_STATUS_CODES = {
    401: ServiceErrorCode.NOT_AUTHENTICATED,
    404: ServiceErrorCode.NOT_FOUND,
    400: ServiceErrorCode.INVALID_INPUT,
    422: ServiceErrorCode.INVALID_INPUT,
    503: ServiceErrorCode.SERVICE_UNAVAILABLE,
}


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "request_id": request.headers.get("X-Request-ID", "unknown"),
        "path": request.url.path,
        "method": request.method
    }


class GlobalErrorHandler:
    """FastAPI exception handlers producing the standard error envelope"""

    @staticmethod
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        context = _request_context(request)
        extra = {
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "details": exc.details,
            **context
        }
        # 4xx are logged as warnings
        if exc.status_code >= 500:
            logger.error(f"Service error: {exc.code}", extra=extra)
        else:
            logger.warning(f"Service error: {exc.code}", extra=extra)

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponseBuilder.build_error_response(
                error_code=exc.code,
                message=exc.message,
                details=exc.details,
                request_id=context["request_id"]
            )
        )

    @staticmethod
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        context = _request_context(request)
        logger.warning(
            f"HTTP exception: {exc.status_code}",
            extra={"status_code": exc.status_code, "detail": exc.detail, **context}
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponseBuilder.build_error_response(
                error_code=HTTP_STATUS_CODES.get(exc.status_code, ServiceErrorCode.INTERNAL_ERROR),
                message=str(exc.detail),
                request_id=context["request_id"]
            ),
            headers=getattr(exc, "headers", None)
        )

    @staticmethod
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Request body/query validation failures become 400 INVALID_INPUT"""
        context = _request_context(request)
        validation_errors = [
            {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error: {len(validation_errors)} errors",
            extra={"validation_errors": validation_errors, **context}
        )

        return JSONResponse(
            status_code=400,
            content=ErrorResponseBuilder.build_error_response(
                error_code=ServiceErrorCode.INVALID_INPUT,
                message="Validation failed",
                details={"validation_errors": validation_errors},
                request_id=context["request_id"]
            )
        )

    @staticmethod
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        context = _request_context(request)
        logger.error(
            f"Unexpected error: {type(exc).__name__}",
            extra={"error_type": type(exc).__name__, "error_message": str(exc), **context},
            exc_info=True
        )

        # Internal error text is only exposed in debug mode
        if settings.DEBUG:
            message = f"Internal error: {str(exc)}"
            details = {"traceback": traceback.format_exc()}
        else:
            message = ServiceError.user_message
            details = {}

        return JSONResponse(
            status_code=500,
            content=ErrorResponseBuilder.build_error_response(
                error_code=ServiceErrorCode.INTERNAL_ERROR,
                message=message,
                details=details,
                request_id=context["request_id"]
            )
        )
