"""
Core module for the storefront admin.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- settings: Immutable runtime settings built at startup
- token_verifier: Session token verification and issuance
- session_gate: Guard for privileged routes
- database: Parameterised SQL over a SQLAlchemy engine
- validation: Id and payload checks shared by services and routes
"""

from .exceptions import (
    StorefrontError,
    ConfigurationError,
    AuthenticationError,
    ValidationError,
    NotFoundError,
    OrderLockedError,
    PersistenceError,
)
from .settings import AuthSettings, LedgerSettings
from .token_verifier import AuthResult, Role, TokenVerifier
from .session_gate import SessionGate, admin_required, require_roles
from .database import Database, ensure_schema

__all__ = [
    "StorefrontError",
    "ConfigurationError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "OrderLockedError",
    "PersistenceError",
    "AuthSettings",
    "LedgerSettings",
    "AuthResult",
    "Role",
    "TokenVerifier",
    "SessionGate",
    "admin_required",
    "require_roles",
    "Database",
    "ensure_schema",
]
