"""
Session token verification.

A session token is an HS256 JWT carried in the ``auth_token`` cookie. It
is valid admin proof if and only if:

    1. It verifies against the configured secret (signature and ``exp``)
    2. Its payload is a claim set with a string ``role``
    3. That role is exactly ``"admin"``

The role check lives here rather than in each route, so every privileged
operation shares one definition of "is an admin".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt

from core.settings import AuthSettings
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


NO_TOKEN = "No token found"
INVALID_TOKEN = "Invalid token"


class Role(Enum):
    """
    Closed set of roles a token may carry.

    Only ADMIN exists today. Unknown role strings do not map to a member.
    """

    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the matching role, or None for anything else."""
        if not isinstance(value, str):
            return None
        for role in cls:
            if role.value == value:
                return role
        return None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a token check."""

    is_authenticated: bool
    error: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> Optional[Role]:
        return Role.parse(self.claims.get("role"))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"isAuthenticated": self.is_authenticated}
        if self.error:
            data["error"] = self.error
        return data


class TokenVerifier:
    """
    Verifies (and, for the login route, issues) signed session tokens.

    The secret comes from an AuthSettings instance built once at startup;
    the verifier never reads the environment itself.
    """

    def __init__(self, settings: AuthSettings):
        self._settings = settings

    @property
    def settings(self) -> AuthSettings:
        return self._settings

    def verify(self, token: Optional[str]) -> AuthResult:
        """
        Check a token.

        Args:
            token: Raw token string, or None/empty when the cookie is absent

        Returns:
            AuthResult. is_authenticated is True only for a correctly signed,
            unexpired token whose role claim is "admin".
        """
        if not token:
            return AuthResult(False, NO_TOKEN)

        try:
            payload = jwt.decode(
                token,
                self._settings.secret,
                algorithms=[self._settings.algorithm],
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: {type(e).__name__}: {e}")
            return AuthResult(False, INVALID_TOKEN)

        if not isinstance(payload, dict) or not isinstance(payload.get("role"), str):
            logger.warning("Token payload is not a well-formed claim set")
            return AuthResult(False, INVALID_TOKEN)

        if Role.parse(payload["role"]) is not Role.ADMIN:
            logger.warning(f"Token role {payload['role']!r} is not admin")
            return AuthResult(False, INVALID_TOKEN)

        return AuthResult(True, claims=payload)

    def issue(self, email: str, name: str, role: Role = Role.ADMIN,
              now: Optional[datetime] = None) -> str:
        """
        Sign a new session token.

        Args:
            email: Admin email (``email`` claim)
            name: Display name (``name`` claim)
            role: Role claim
            now: Issue time (defaults to current UTC time)

        Returns:
            Encoded JWT string
        """
        now = now or datetime.now(timezone.utc)
        payload = {
            "email": email,
            "name": name,
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(seconds=self._settings.token_ttl_seconds),
        }
        return jwt.encode(payload, self._settings.secret, algorithm=self._settings.algorithm)
