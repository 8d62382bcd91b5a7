"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes for the shipment lifecycle and the
global exception handlers that render them.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("logistics.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class InvalidFormatError(AppException):
    """Raised when a tracking code or input value is malformed."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_FORMAT_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class TerminalStateViolationError(AppException):
    """Raised when a transition is attempted on a delivered shipment."""

    def __init__(self, tracking_code: str, message: str = None, error_code: str = "ERR_STATE_001"):
        super().__init__(
            message=message or f"Shipment {tracking_code} is already delivered",
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
            details={"tracking_code": tracking_code}
        )


class AlreadyDeliveredError(TerminalStateViolationError):
    """Raised by ingestion when a scanned shipment is already delivered."""

    def __init__(self, tracking_code: str):
        super().__init__(
            tracking_code,
            message="Already delivered",
            error_code="ERR_STATE_002"
        )


class InvalidTransitionError(AppException):
    """Raised when a requested transition is not allowed from the current state."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_003",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class PersistenceError(AppException):
    """Raised when a datastore write fails for a reason other than idempotency."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_DB_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class OperationTimeoutError(AppException):
    """Raised when an operation exceeds its caller-supplied deadline."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            message=f"{operation} did not finish within {timeout_seconds}s",
            error_code="ERR_TIMEOUT_001",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": exc.errors()
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "exception_type": type(exc).__name__}
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
