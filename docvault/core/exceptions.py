"""
Custom Exceptions - Application-specific error classes.

This module defines the exception hierarchy used by the storage layer
and the services built on it:
- Each exception has an error code and optional details
- Backend failures are raised by the durable store and absorbed by the
  resilient store; they never reach callers of the store contract
"""
from typing import Iterable, Optional


class StoreError(Exception):
    """
    Base exception for all docvault errors.

    Subclass this for specific error types.
    """
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class BackendError(StoreError):
    """Raised when a durable backend operation fails."""
    error_code = "backend_error"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Backend operation failed: {operation}",
            details=str(cause) if cause is not None else None
        )
        self.operation = operation
        self.cause = cause


class InvalidUpdateError(StoreError):
    """Raised when a partial update names fields the entity does not have."""
    error_code = "invalid_update"

    def __init__(self, entity: str, fields: Iterable[str]):
        names = sorted(fields)
        super().__init__(
            message=f"Unknown {entity} field(s): {', '.join(names)}",
            details=f"fields={names}"
        )
        self.entity = entity
        self.fields = names


class ValidationError(StoreError):
    """Raised when service-level input validation fails."""
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field
