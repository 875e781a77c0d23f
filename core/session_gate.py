"""
Session gate for privileged routes.

Every call into a wrapped view runs the token verifier first. On failure
the view never executes and an AuthenticationError (401) propagates to the
error handler registered in create_app().

Usage:
    @admin_bp.route("/api/admin/orders/<order_id>")
    @admin_required
    def get_order(order_id):
        ...

    # Future roles: the gate checks a capability set, callers stay unchanged
    @require_roles(Role.ADMIN)
    def view(): ...
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, FrozenSet, Iterable, Optional

from flask import Response, current_app, g, request

from core.exceptions import AuthenticationError
from core.token_verifier import AuthResult, Role, TokenVerifier
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ADMIN_ONLY: FrozenSet[Role] = frozenset({Role.ADMIN})


class SessionGate:
    """
    Guards privileged operations with the token verifier.

    Also owns the session cookie: setting it at login and clearing it at
    logout, so the cookie name and flags are defined in one place.
    """

    def __init__(self, verifier: TokenVerifier):
        self._verifier = verifier

    @property
    def verifier(self) -> TokenVerifier:
        return self._verifier

    @property
    def cookie_name(self) -> str:
        return self._verifier.settings.cookie_name

    def token_from_request(self) -> Optional[str]:
        """
        Extract the raw token from the current request.

        An ``Authorization: Bearer`` header wins over the cookie, matching
        how API clients and the browser each present the token.
        """
        header = request.headers.get("Authorization", "")
        if header.startswith("Bearer "):
            token = header[len("Bearer "):].strip()
            if token:
                return token
        return request.cookies.get(self.cookie_name)

    def authorize(self, token: Optional[str],
                  required: Iterable[Role] = ADMIN_ONLY) -> AuthResult:
        """
        Verify a token and check that its role is in the required set.

        Raises:
            AuthenticationError: With the verifier's reason on failure
        """
        result = self._verifier.verify(token)
        if not result.is_authenticated:
            raise AuthenticationError(result.error or "Invalid token")

        if result.role not in frozenset(required):
            raise AuthenticationError("Insufficient role")

        return result

    def set_cookie(self, response: Response, token: str) -> Response:
        """Attach a freshly issued token to the response."""
        settings = self._verifier.settings
        response.set_cookie(
            self.cookie_name,
            token,
            max_age=settings.token_ttl_seconds,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="Lax",
            path="/",
        )
        return response

    def clear_cookie(self, response: Response) -> Response:
        """
        Remove the session cookie.

        Unconditional: safe whether or not a cookie was ever set.
        """
        response.delete_cookie(self.cookie_name, path="/")
        return response


def require_roles(*roles: Role) -> Callable:
    """
    Decorator factory guarding a view with a role set.

    The verified claims are stored on ``flask.g.admin_claims`` for the view.
    """
    required = frozenset(roles) or ADMIN_ONLY

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapper(*args, **kwargs):
            gate: SessionGate = current_app.config["SESSION_GATE"]
            try:
                result = gate.authorize(gate.token_from_request(), required)
            except AuthenticationError as e:
                logger.info(f"Rejected {request.method} {request.path}: {e.reason}")
                raise
            g.admin_claims = result.claims
            return f(*args, **kwargs)
        return wrapper

    return decorator


admin_required = require_roles(Role.ADMIN)
