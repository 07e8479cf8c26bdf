from typing import Any, Dict, Optional

from proofquest.core.exceptions.handler import ServiceError, ServiceErrorCode


class ConnectionFailedError(ServiceError):
    user_message = "Could not connect. Please try again."

    def __init__(self, message: str = "Connection failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ServiceErrorCode.CONNECTION_FAILED,
            message=message,
            status_code=502,
            details=details,
        )


class BusyError(ServiceError):
    user_message = "Another sign-in is already in progress."

    def __init__(self, message: str = "Another connect operation is in progress"):
        super().__init__(code=ServiceErrorCode.BUSY, message=message, status_code=409)


class NotAuthenticatedError(ServiceError):
    user_message = "Please sign in first."

    def __init__(self, message: str = "No authenticated identity"):
        super().__init__(code=ServiceErrorCode.NOT_AUTHENTICATED, message=message, status_code=401)


class NotFoundError(ServiceError):
    user_message = "We couldn't find that challenge."

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ServiceErrorCode.NOT_FOUND,
            message=message,
            status_code=404,
            details=details,
        )


class ValidationError(ServiceError):
    def __init__(self, message: str = "Validation error", field: Optional[str] = None):
        super().__init__(
            code=ServiceErrorCode.INVALID_INPUT,
            message=message,
            status_code=400,
            details={"field": field} if field else None,
        )

    @property
    def user_message(self) -> str:
        # Validation messages are written for the user
        return self.message


class VerificationFailedError(ServiceError):
    """Proof was rejected or could not be checked; the caller may retry."""

    user_message = "We couldn't verify your proof. Please check it and try again."

    def __init__(self, reason: str):
        super().__init__(
            code=ServiceErrorCode.VERIFICATION_FAILED,
            message=f"Proof verification failed: {reason}",
            status_code=422,
            details={"reason": reason},
        )
        self.reason = reason


class PersistenceFailedError(ServiceError):
    """Storage write or delete failed; in-memory state was already applied."""

    user_message = "Your progress could not be saved on this device."

    def __init__(self, message: str = "Failed to persist state", key: Optional[str] = None):
        super().__init__(
            code=ServiceErrorCode.PERSISTENCE_FAILED,
            message=message,
            status_code=500,
            details={"key": key} if key else None,
        )


class RewardUnitMismatchError(ServiceError):
    user_message = "This challenge pays out in a different reward currency."

    def __init__(self, expected: str, actual: str):
        super().__init__(
            code=ServiceErrorCode.REWARD_UNIT_MISMATCH,
            message=f"Cannot add {actual} rewards to a {expected} balance",
            status_code=422,
            details={"expected": expected, "actual": actual},
        )


class ServiceUnavailableError(ServiceError):
    user_message = "Challenges are unavailable right now. Please try again later."

    def __init__(self, message: str = "Service unavailable"):
        super().__init__(code=ServiceErrorCode.SERVICE_UNAVAILABLE, message=message, status_code=503)
