"""
Room Booking Domain

Error taxonomy shared by every service.
"""

from shared.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConcurrencyError,
    ConflictError,
    DatabaseError,
    DomainException,
    EntityNotFoundError,
    ErrorCode,
    ValidationError,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "ConcurrencyError",
    "ConflictError",
    "DatabaseError",
    "DomainException",
    "EntityNotFoundError",
    "ErrorCode",
    "ValidationError",
]
