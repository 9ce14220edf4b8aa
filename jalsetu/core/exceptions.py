"""Custom exception classes for the JalSetu water assistant."""

import logging
from typing import Optional, Dict, Any
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for classification and HTTP mapping."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


# Client-side categories are logged at DEBUG.
CLIENT_ERROR_CATEGORIES = (ErrorCategory.VALIDATION, ErrorCategory.NOT_FOUND)


class JalSetuError(Exception):
    """Base exception class for all application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        """Initialize base exception.

        Args:
            message: Human-readable error message
            category: Error category for classification
            details: Additional error details
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.original_error = original_error

        level = logging.DEBUG if category in CLIENT_ERROR_CATEGORIES else logging.ERROR
        logger.log(
            level,
            f"{self.__class__.__name__}: {message}",
            extra={
                "category": category.value,
                "details": details,
                "original_error": str(original_error) if original_error else None
            }
        )


class ValidationError(JalSetuError):
    """Exception raised for input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details
        )


class NotFoundError(JalSetuError):
    """Exception raised when a farm or reading does not exist."""

    def __init__(self, message: str, resource: Optional[str] = None, resource_id: Optional[Any] = None):
        details = {}
        if resource:
            details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            details=details
        )


class AuthenticationError(JalSetuError):
    """Exception raised for authentication and authorization errors."""

    def __init__(self, message: str, service: Optional[str] = None):
        details = {}
        if service:
            details["service"] = service

        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            details=details
        )


class DatabaseError(JalSetuError):
    """Exception raised for database-related errors."""

    def __init__(self, message: str, operation: Optional[str] = None, collection: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation
        if collection:
            details["collection"] = collection

        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            details=details
        )


class ExternalAPIError(JalSetuError):
    """Exception raised for external API errors (weather, LLM providers)."""

    def __init__(
        self,
        message: str,
        service: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {"service": service}
        if status_code:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            category=ErrorCategory.EXTERNAL_API,
            details=details,
            original_error=original_error
        )


class WeatherServiceError(ExternalAPIError):
    """Exception raised when the forecast cannot be fetched or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None, original_error: Optional[Exception] = None):
        super().__init__(
            message=message,
            service="weatherapi",
            status_code=status_code,
            original_error=original_error
        )


class ConfigurationError(JalSetuError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {}
        if setting:
            details["setting"] = setting

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            details=details
        )


class TimeoutError(JalSetuError):
    """Exception raised for timeout errors."""

    def __init__(self, message: str, operation: str, timeout_seconds: Optional[float] = None):
        details = {"operation": operation}
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=message,
            category=ErrorCategory.TIMEOUT,
            details=details
        )


def get_http_status_code(exception: JalSetuError) -> int:
    """Get appropriate HTTP status code for an exception.

    Args:
        exception: Application exception

    Returns:
        HTTP status code
    """
    status_mapping = {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.NOT_FOUND: 404,
        ErrorCategory.AUTHENTICATION: 401,
        ErrorCategory.DATABASE: 503,
        ErrorCategory.EXTERNAL_API: 502,
        ErrorCategory.CONFIGURATION: 500,
        ErrorCategory.TIMEOUT: 408,
        ErrorCategory.UNKNOWN: 500
    }

    return status_mapping.get(exception.category, 500)


def create_error_response(exception: JalSetuError) -> Dict[str, Any]:
    """Create the JSON error body for an exception.

    Validation errors carry only the human-readable message under ``error``
    so clients can show it verbatim. Everything else also names the
    exception type under ``message``.

    Args:
        exception: Application exception

    Returns:
        Error response dictionary
    """
    if exception.category == ErrorCategory.VALIDATION:
        return {"error": exception.message}

    return {
        "error": exception.message,
        "message": exception.__class__.__name__
    }
