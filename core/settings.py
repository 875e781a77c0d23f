"""
Immutable runtime settings.

Flask's config is a mutable dict that any module could read ad hoc. The
values the core depends on are copied out of it ONCE, at startup, into
frozen dataclasses that are handed to the services by reference.

Usage:
    auth_settings = AuthSettings.from_config(app.config)
    verifier = TokenVerifier(auth_settings)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from core.exceptions import ConfigurationError


@dataclass(frozen=True)
class AuthSettings:
    """Settings for token verification and the session cookie."""

    secret: str
    """HMAC key used to sign and verify session tokens."""

    algorithm: str = "HS256"
    """JWT signing algorithm."""

    cookie_name: str = "auth_token"
    """Name of the browser cookie carrying the token."""

    token_ttl_seconds: int = 7200
    """Lifetime of tokens issued at login."""

    cookie_secure: bool = False
    """Whether the cookie is restricted to HTTPS."""

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks
        return (
            f"AuthSettings(algorithm={self.algorithm!r}, "
            f"cookie_name={self.cookie_name!r}, "
            f"token_ttl_seconds={self.token_ttl_seconds})"
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AuthSettings":
        """
        Build settings from a Flask config mapping.

        Raises:
            ConfigurationError: If JWT_SECRET is missing or blank. There is
                no fallback key.
        """
        secret = config.get("JWT_SECRET")
        if not secret or not str(secret).strip():
            raise ConfigurationError("JWT_SECRET")

        return cls(
            secret=str(secret),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            cookie_name=config.get("AUTH_COOKIE_NAME", "auth_token"),
            token_ttl_seconds=int(config.get("AUTH_TOKEN_TTL_SECONDS", 7200)),
            cookie_secure=bool(config.get("AUTH_COOKIE_SECURE", False)),
        )


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for order reconciliation."""

    tax_rate: Decimal
    """Sales tax rate applied to taxable product lines (0.0775 = 7.75%)."""

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "LedgerSettings":
        raw = config.get("TAX_RATE", "0")
        try:
            rate = Decimal(str(raw))
        except InvalidOperation:
            raise ConfigurationError("TAX_RATE", f"TAX_RATE is not a number: {raw!r}")
        if rate < 0 or rate >= 1:
            raise ConfigurationError("TAX_RATE", f"TAX_RATE must be in [0, 1): {raw!r}")
        return cls(tax_rate=rate)
