"""Custom domain exceptions for the application."""

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
FORBIDDEN = "FORBIDDEN"
UNAUTHORIZED = "UNAUTHORIZED"
INVALID_STATE = "INVALID_STATE"
DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist."""

    pass


class ForbiddenError(DomainError):
    """Raised when the caller lacks the relationship or role an operation requires."""

    pass


class UnauthorizedError(DomainError):
    """Raised when the caller cannot be identified."""

    pass


class InvalidStateError(DomainError):
    """Raised when an operation is not valid for the current lifecycle state (e.g. acting on a non-pending request)."""

    pass


class DuplicateResourceError(DomainError):
    """Raised when a write would violate a uniqueness invariant (double signature, duplicate pending request)."""

    pass


class DomainValidationError(DomainError):
    """Raised when business rules or domain validation fail (e.g. end date before start date)."""

    pass
