"""
Custom exception classes for EVCompare.

This module defines a hierarchy of exceptions with:
- Structured error responses
- Default user-facing messages per error code
- Proper HTTP status codes
- Error codes for client-side handling
"""

from enum import StrEnum
from typing import Any

from fastapi import HTTPException, status

# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(StrEnum):
    """Standardized error codes for client-side handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    REQUEST_TIMEOUT = "ERR_1006"

    # Database errors (2xxx)
    DATABASE_ERROR = "ERR_2000"
    DATABASE_CONNECTION = "ERR_2001"
    DATABASE_TIMEOUT = "ERR_2002"
    DATABASE_INTEGRITY = "ERR_2003"
    POSTGRES_ERROR = "ERR_2010"

    # External API errors (3xxx)
    EXTERNAL_API_ERROR = "ERR_3000"
    EV_SPECS_API_ERROR = "ERR_3001"
    EV_SPECS_RATE_LIMITED = "ERR_3002"

    # Business logic errors (4xxx)
    VEHICLE_NOT_FOUND = "ERR_4003"
    VEHICLE_FETCH_ERROR = "ERR_4010"
    COMPARISON_ERROR = "ERR_4020"
    INGESTION_ERROR = "ERR_4030"

    # Authentication errors (5xxx)
    AUTH_ERROR = "ERR_5000"
    CRON_UNAUTHORIZED = "ERR_5010"


# =============================================================================
# Default Error Messages
# =============================================================================


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INTERNAL_ERROR: "An internal server error occurred. Please try again later.",
    ErrorCode.VALIDATION_ERROR: "Invalid input. Please check the submitted data.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",
    ErrorCode.REQUEST_TIMEOUT: "The request timed out. Please try again.",
    ErrorCode.DATABASE_ERROR: "A database error occurred. Please try again later.",
    ErrorCode.DATABASE_CONNECTION: "Could not connect to the database.",
    ErrorCode.DATABASE_TIMEOUT: "The database connection timed out.",
    ErrorCode.DATABASE_INTEGRITY: "A data integrity error occurred.",
    ErrorCode.POSTGRES_ERROR: "PostgreSQL database error.",
    ErrorCode.EXTERNAL_API_ERROR: "An external service failed. Please try again later.",
    ErrorCode.EV_SPECS_API_ERROR: "The vehicle specs provider returned an error.",
    ErrorCode.EV_SPECS_RATE_LIMITED: "The vehicle specs provider rate limit was exceeded.",
    ErrorCode.VEHICLE_NOT_FOUND: "The requested vehicle was not found.",
    ErrorCode.VEHICLE_FETCH_ERROR: "Failed to fetch vehicles",
    ErrorCode.COMPARISON_ERROR: "The vehicle selection cannot be compared.",
    ErrorCode.INGESTION_ERROR: "Cron job failed",
    ErrorCode.AUTH_ERROR: "Authentication failed.",
    ErrorCode.CRON_UNAUTHORIZED: "Unauthorized",
}


def get_error_message(code: ErrorCode, fallback: str | None = None) -> str:
    """Get the default message for an error code."""
    return ERROR_MESSAGES.get(code, fallback or "An unknown error occurred.")


# =============================================================================
# Base Exception Classes
# =============================================================================


class EVCompareException(Exception):
    """
    Base exception class for all EVCompare exceptions.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error context
        status_code: HTTP status code
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
        )


# =============================================================================
# Validation Exceptions
# =============================================================================


class ValidationException(EVCompareException):
    """Exception for validation errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details=error_details,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class ComparisonException(ValidationException):
    """Raised when a vehicle selection cannot be compared."""

    def __init__(self, message: str, vehicle_ids: list[str] | None = None):
        details = {}
        if vehicle_ids:
            details["vehicle_ids"] = vehicle_ids

        super().__init__(message=message, field="vehicle_ids", details=details)
        self.code = ErrorCode.COMPARISON_ERROR


# =============================================================================
# Resource Exceptions
# =============================================================================


class NotFoundException(EVCompareException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            details=details,
            status_code=status.HTTP_404_NOT_FOUND,
        )


class VehicleNotFoundException(NotFoundException):
    """Exception when vehicle is not found."""

    def __init__(
        self,
        message: str = "The requested vehicle was not found.",
        vehicle_id: str | None = None,
    ):
        super().__init__(
            message=message,
            resource_type="vehicle",
            resource_id=vehicle_id,
        )
        self.code = ErrorCode.VEHICLE_NOT_FOUND


class VehicleFetchException(EVCompareException):
    """Raised when the vehicle list cannot be read from the database."""

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__(
            message=get_error_message(ErrorCode.VEHICLE_FETCH_ERROR),
            code=ErrorCode.VEHICLE_FETCH_ERROR,
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# =============================================================================
# Database Exceptions
# =============================================================================


class DatabaseException(EVCompareException):
    """Base exception for database errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        error_details = details or {}
        if original_error:
            error_details["original_error"] = str(original_error)

        super().__init__(
            message=message,
            code=code,
            details=error_details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
        self.original_error = original_error


class PostgresException(DatabaseException):
    """Exception for PostgreSQL errors."""

    def __init__(
        self,
        message: str = "PostgreSQL database error.",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.POSTGRES_ERROR,
            details=details,
            original_error=original_error,
        )


class PostgresConnectionException(PostgresException):
    """Exception for PostgreSQL connection errors."""

    def __init__(
        self,
        message: str = "Could not connect to the PostgreSQL database.",
        original_error: Exception | None = None,
    ):
        super().__init__(
            message=message,
            original_error=original_error,
        )
        self.code = ErrorCode.DATABASE_CONNECTION


# =============================================================================
# External API Exceptions
# =============================================================================


class ExternalAPIException(EVCompareException):
    """Base exception for external API errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
        retry_after: int | None = None,
    ):
        error_details = details or {}
        if original_error:
            error_details["original_error"] = str(original_error)
        if retry_after:
            error_details["retry_after_seconds"] = retry_after

        super().__init__(
            message=message,
            code=code,
            details=error_details,
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
        self.original_error = original_error
        self.retry_after = retry_after


class EVSpecsAPIException(ExternalAPIException):
    """Exception for vehicle specs provider errors."""

    def __init__(
        self,
        message: str = "The vehicle specs provider returned an error.",
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        details = {}
        if status_code is not None:
            details["upstream_status"] = status_code

        super().__init__(
            message=message,
            code=ErrorCode.EV_SPECS_API_ERROR,
            details=details,
            original_error=original_error,
        )
        self.upstream_status = status_code
        if status_code == 429:
            self.code = ErrorCode.EV_SPECS_RATE_LIMITED


# =============================================================================
# Ingestion Exceptions
# =============================================================================


class IngestionException(EVCompareException):
    """Raised when an ingestion run fails at the top level."""

    def __init__(self, error: str, timestamp: str | None = None):
        details: dict[str, Any] = {"error": error}
        if timestamp:
            details["timestamp"] = timestamp

        super().__init__(
            message=get_error_message(ErrorCode.INGESTION_ERROR),
            code=ErrorCode.INGESTION_ERROR,
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# =============================================================================
# Authentication Exceptions
# =============================================================================


class AuthenticationException(EVCompareException):
    """Base exception for authentication errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.AUTH_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            details=details,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class CronUnauthorizedException(AuthenticationException):
    """Cron endpoint called without the shared secret."""

    def __init__(self):
        super().__init__(message="Unauthorized", code=ErrorCode.CRON_UNAUTHORIZED)
