"""
Custom exceptions for the storefront admin core.

Exception Hierarchy:
    StorefrontError (base)
    ├── ConfigurationError   - Required setting missing (startup failure)
    ├── AuthenticationError  - Missing/invalid token or wrong role (401)
    ├── ValidationError      - Missing fields or malformed input (400)
    ├── NotFoundError        - Id has no matching record (404)
    ├── OrderLockedError     - Order is in a terminal status (409)
    └── PersistenceError     - Storage failure, detail kept server-side (500)

Usage:
    Startup errors (ConfigurationError) cause the app to fail fast.
    Runtime errors carry an HTTP status and are rendered as JSON by the
    error handler registered in create_app().
"""

from typing import Optional, Dict, Any


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    All custom exceptions inherit from this class, allowing the Flask error
    handler to render every application error with a single registration.
    """

    status_code = 500
    """HTTP status used when this error reaches a route."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for logging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    @property
    def public_message(self) -> str:
        """Message that is safe to return to an external caller."""
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body."""
        return {"error": self.public_message}


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(StorefrontError):
    """
    A required configuration value is missing or blank.

    This is a FATAL error. The token secret in particular has no default:
    running without one would let anybody mint admin tokens.
    """

    def __init__(self, setting: str, message: Optional[str] = None):
        message = message or f"Required setting {setting} is not configured"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in the environment or .env file",
        }
        super().__init__(message, details)
        self.setting = setting


# =============================================================================
# RUNTIME ERRORS - Request fails, application continues
# =============================================================================

class AuthenticationError(StorefrontError):
    """
    The caller could not be authenticated as an admin.

    The reason ("No token found", "Invalid token", ...) is kept for logging
    but external callers always see the same body, so they cannot tell a
    missing token from a bad signature or a wrong role.
    """

    status_code = 401

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(reason, {"reason": reason})
        self.reason = reason

    @property
    def public_message(self) -> str:
        return "Unauthorized"


class ValidationError(StorefrontError):
    """Input was missing or malformed."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class NotFoundError(StorefrontError):
    """A well-formed id matched no record."""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any):
        message = f"{resource} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class OrderLockedError(StorefrontError):
    """
    The order is in a terminal status and can no longer change.

    Completed and cancelled orders keep the totals they were closed with.
    """

    status_code = 409

    def __init__(self, order_id: int, status: str):
        message = f"Order {order_id} is {status} and cannot be modified"
        super().__init__(message, {"order_id": order_id, "status": status})
        self.order_id = order_id
        self.status = status


class PersistenceError(StorefrontError):
    """
    The data store failed while serving a request.

    Wraps the underlying storage exception. The original error is logged
    by whoever raises this; callers only ever see a generic message.
    """

    status_code = 500

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        message = f"Persistence failure during {operation}"
        details = {"operation": operation}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(message, details)
        self.operation = operation
        self.cause = cause

    @property
    def public_message(self) -> str:
        return "Internal server error"
