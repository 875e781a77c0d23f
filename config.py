"""
Configuration for the storefront admin.

JWT_SECRET has NO default. The application refuses to start without it
(see core.settings.AuthSettings.from_config).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv()

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings (session cookie for the quote intake)
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-session-key")
    SESSION_COOKIE_NAME = "storefront_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = _env_flag("FLASK_DEBUG", "1")

    # Database (any SQLAlchemy URL; PostgreSQL in production)
    DATABASE_URL = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'instance' / 'storefront.db'}"
    )
    # Create the core tables at startup (local development only)
    CREATE_SCHEMA = _env_flag("CREATE_SCHEMA", "1")

    # ==========================================================================
    # Admin session tokens
    # ==========================================================================
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_ALGORITHM = "HS256"
    AUTH_COOKIE_NAME = "auth_token"
    AUTH_TOKEN_TTL_SECONDS = int(os.environ.get("AUTH_TOKEN_TTL_SECONDS", "7200"))
    AUTH_COOKIE_SECURE = _env_flag("AUTH_COOKIE_SECURE", "0")

    # ==========================================================================
    # Order reconciliation
    # ==========================================================================
    # Sales tax on physical goods (7.75%). Custom services are not taxed.
    TAX_RATE = os.environ.get("TAX_RATE", "0.0775")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    CREATE_SCHEMA = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    AUTH_COOKIE_SECURE = True


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    SECRET_KEY = "test-session-key"
    JWT_SECRET = "test-jwt-secret-for-the-storefront-suite"
    DATABASE_URL = "sqlite://"
    CREATE_SCHEMA = True
    TAX_RATE = "0.0775"


CONFIG_BY_ENVIRONMENT = {
    "production": ProductionConfig,
    "development": DevelopmentConfig,
    "testing": TestingConfig,
}
