# Core module
"""
Core module for EVCompare backend.

This module provides:
- Configuration management (config.py)
- Custom exceptions with error codes (exceptions.py)
- Global error handlers (error_handlers.py)
- Structured logging (logging.py)
- Prometheus metrics (metrics.py)
"""

from app.core.config import settings, get_settings
from app.core.exceptions import (
    # Base exceptions
    EVCompareException,
    ValidationException,
    NotFoundException,
    # Database exceptions
    DatabaseException,
    PostgresException,
    PostgresConnectionException,
    # External API exceptions
    ExternalAPIException,
    EVSpecsAPIException,
    # Business logic exceptions
    VehicleNotFoundException,
    VehicleFetchException,
    ComparisonException,
    IngestionException,
    # Authentication exceptions
    AuthenticationException,
    CronUnauthorizedException,
    # Error codes
    ErrorCode,
    get_error_message,
)
from app.core.logging import (
    setup_logging,
    get_logger,
    log_database_operation,
    log_external_api_call,
    log_ingestion_run,
    PerformanceLogger,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Exceptions
    "EVCompareException",
    "ValidationException",
    "NotFoundException",
    "DatabaseException",
    "PostgresException",
    "PostgresConnectionException",
    "ExternalAPIException",
    "EVSpecsAPIException",
    "VehicleNotFoundException",
    "VehicleFetchException",
    "ComparisonException",
    "IngestionException",
    "AuthenticationException",
    "CronUnauthorizedException",
    "ErrorCode",
    "get_error_message",
    # Logging
    "setup_logging",
    "get_logger",
    "log_database_operation",
    "log_external_api_call",
    "log_ingestion_run",
    "PerformanceLogger",
]
