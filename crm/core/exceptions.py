"""
Custom Exceptions - Application-specific error classes.

This module defines a hierarchy of exceptions for clean error handling:
- Each exception has a status code and error code
- The API layer turns them into JSON error responses
- The migration runner raises MigrationError and the entry point exits non-zero
"""
from typing import Any, Dict, List, Optional


class CRMException(Exception):
    """
    Base exception for all CRM errors.

    Subclass this for specific error types.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(CRMException):
    """
    Raised when input validation fails.

    details is a list of {"field", "message"} entries.
    """
    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
    ):
        if errors is None and field:
            errors = [{"field": field, "message": message}]
        super().__init__(message, details=errors or [])
        self.field = field


class UnauthorizedError(CRMException):
    """Raised when the request carries no usable credentials."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(CRMException):
    """Raised when the caller may not perform the operation."""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(CRMException):
    """Raised when a record does not exist or is soft-deleted."""
    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str, record_id: Optional[str] = None):
        message = f"{resource} not found" if record_id is None else f"{resource} not found: {record_id}"
        super().__init__(message, details={"resource": resource, "id": record_id})
        self.resource = resource
        self.record_id = record_id


class ConflictError(CRMException):
    """Raised when an update carries a stale modification stamp."""
    status_code = 409
    error_code = "conflict"

    def __init__(self, message: str = "Record was modified by another user"):
        super().__init__(message)


class DatabaseError(CRMException):
    """Raised when database operations fail."""
    status_code = 503
    error_code = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class MigrationError(CRMException):
    """Raised when a migration or seed script fails."""
    status_code = 500
    error_code = "migration_error"

    def __init__(self, version: str, message: str):
        super().__init__(f"Migration {version} failed: {message}", details={"version": version})
        self.version = version
