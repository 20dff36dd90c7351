from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """
    Base exception for API errors

    Response body: {"success": false, "error": {"code", "message", "details"}}
    Subclasses set http_status / default_code / default_message.
    """

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL_001"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.error_code = error_code or self.default_code
        self.message = message or self.default_message
        self.details = details or {}

        super().__init__(
            status_code=self.http_status,
            detail={
                "success": False,
                "error": {
                    "code": self.error_code,
                    "message": self.message,
                    "details": self.details,
                },
            },
        )

    def __str__(self) -> str:  # str(e) returns the human message
        return self.message


class AuthenticationError(BaseAPIException):
    """Missing or invalid service token"""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTH_001"
    default_message = "Authentication failed"


class ValidationError(BaseAPIException):
    """Malformed input: unknown enum member, non-positive amount, plan limits"""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "VALIDATION_001"
    default_message = "Validation failed"


class InsufficientBalanceError(BaseAPIException):
    """Sub-balance too small for the requested deduction"""

    http_status = status.HTTP_400_BAD_REQUEST
    default_code = "BALANCE_001"
    default_message = "Insufficient balance"


class NotFoundError(BaseAPIException):
    """Balance record, plan or position does not exist"""

    http_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND_001"
    default_message = "Resource not found"


class ConflictError(BaseAPIException):
    http_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT_001"
    default_message = "Resource conflict"


class DuplicatePeriodError(ConflictError):
    """Profit for this (position, period) was already distributed"""

    default_code = "DISTRIBUTION_001"

    def __init__(self, position_id: int, period_index: int):
        self.position_id = position_id
        self.period_index = period_index
        super().__init__(
            message=f"Profit already distributed for position {position_id}, period {period_index}",
            details={"position_id": position_id, "period_index": period_index},
        )


class StorageError(BaseAPIException):
    """Connection loss or unexpected constraint violation; the unit of work was rolled back"""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "STORAGE_001"
    default_message = "Storage failure"


class InternalServerError(BaseAPIException):
    """Unhandled error rendered by the exception handlers"""
