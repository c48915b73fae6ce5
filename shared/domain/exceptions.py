"""
Rich Domain Exceptions

Exception hierarchy for domain-specific errors.
Supports structured error information, error codes, and context.
"""

from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for domain exceptions."""

    # Domain errors
    DOMAIN_VALIDATION_ERROR = "DOMAIN_VALIDATION_ERROR"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    ENTITY_ALREADY_EXISTS = "ENTITY_ALREADY_EXISTS"

    # Booking errors
    SLOT_ALREADY_BOOKED = "SLOT_ALREADY_BOOKED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_DENIED = "AUTHORIZATION_DENIED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # System errors
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Provides structured error information with error codes, context, and metadata.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            error_code: Standard error code
            status_code: HTTP status code (default: 500)
            context: Additional context data
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        self.cause = cause

        log = logger.error if status_code >= 500 else logger.info
        log(
            "Domain exception raised",
            error_code=error_code.value,
            message=message,
            status_code=status_code,
            context=context,
            exception_type=type(self).__name__,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "status": "error",
            "error": self.error_code.value,
            "message": self.message,
        }
        if self.context:
            result["context"] = self.context
        return result


class ValidationError(DomainException):
    """Raised when domain validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.DOMAIN_VALIDATION_ERROR,
            status_code=400,
            context=context,
            **kwargs
        )


class BadRequestError(DomainException):
    """Raised when a request is well-formed but not applicable to the current state."""

    def __init__(
        self,
        message: str,
        rule_name: str | None = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if rule_name:
            context["rule_name"] = rule_name

        super().__init__(
            message=message,
            error_code=ErrorCode.BUSINESS_RULE_VIOLATION,
            status_code=400,
            context=context,
            **kwargs
        )


class EntityNotFoundError(DomainException):
    """Raised when an entity is not found."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str | None = None,
        **kwargs
    ):
        message = kwargs.pop("message", None) or f"{entity_type} not found"

        context = kwargs.pop("context", {})
        context["entity_type"] = entity_type
        if entity_id:
            context["entity_id"] = entity_id

        super().__init__(
            message=message,
            error_code=ErrorCode.ENTITY_NOT_FOUND,
            status_code=404,
            context=context,
            **kwargs
        )


class ConflictError(DomainException):
    """
    Raised on a mutual-exclusion violation or a concurrent modification.

    Conflicts caused by concurrent writers are marked retryable.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ENTITY_ALREADY_EXISTS,
        retryable: bool = False,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if retryable:
            context["retryable"] = True

        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            context=context,
            **kwargs
        )
        self.retryable = retryable


class ConcurrencyError(ConflictError):
    """Raised when an optimistic concurrency check fails."""

    def __init__(self, message: str = "Concurrent modification detected", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONCURRENT_MODIFICATION,
            retryable=True,
            **kwargs
        )


class DatabaseError(DomainException):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation

        super().__init__(
            message=message,
            error_code=ErrorCode.DATABASE_ERROR,
            status_code=500,
            context=context,
            **kwargs
        )


class AuthenticationError(DomainException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_FAILED,
        **kwargs
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=401,
            **kwargs
        )


class AuthorizationError(DomainException):
    """Raised when authorization is denied."""

    def __init__(
        self,
        message: str = "Authorization denied",
        resource: str | None = None,
        action: str | None = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if resource:
            context["resource"] = resource
        if action:
            context["action"] = action

        super().__init__(
            message=message,
            error_code=ErrorCode.AUTHORIZATION_DENIED,
            status_code=403,
            context=context,
            **kwargs
        )
