"""
Admin account lookup for the login route.

Passwords are stored as werkzeug hashes. Only accounts whose role maps to
a known Role can sign in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from core.database import Database
from core.exceptions import AuthenticationError, PersistenceError
from core.token_verifier import Role
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class AdminAccount:
    email: str
    name: str
    role: Role


class AdminAccounts:
    """Checks admin credentials against the admin_users table."""

    def __init__(self, db: Database):
        self._db = db

    def authenticate(self, email: Optional[str], password: Optional[str]) -> AdminAccount:
        """
        Raises:
            AuthenticationError: Unknown email, wrong password or unknown role
            PersistenceError: Store failure
        """
        if not email or not password:
            raise AuthenticationError("Invalid credentials")

        try:
            row = self._db.fetch_one(
                "SELECT email, name, role, password_hash FROM admin_users WHERE email = :email",
                {"email": email.strip().lower()},
            )
        except SQLAlchemyError as e:
            logger.error(f"Admin lookup failed: {e}", exc_info=True)
            raise PersistenceError("admin lookup", e) from e

        if row is None or not check_password_hash(row["password_hash"], password):
            logger.warning(f"Failed login for {email!r}")
            raise AuthenticationError("Invalid credentials")

        role = Role.parse(row["role"])
        if role is None:
            logger.warning(f"Login refused for {email!r}: unknown role {row['role']!r}")
            raise AuthenticationError("Invalid credentials")

        return AdminAccount(email=row["email"], name=row["name"], role=role)

    def create(self, email: str, password: str, name: str, role: Role = Role.ADMIN) -> AdminAccount:
        """Add an admin account (used by setup and tests)."""
        try:
            self._db.execute(
                "INSERT INTO admin_users (email, password_hash, name, role) "
                "VALUES (:email, :password_hash, :name, :role)",
                {
                    "email": email.strip().lower(),
                    "password_hash": generate_password_hash(password),
                    "name": name,
                    "role": role.value,
                },
            )
        except SQLAlchemyError as e:
            logger.error(f"Admin creation failed: {e}", exc_info=True)
            raise PersistenceError("admin creation", e) from e
        logger.info(f"Created admin account {email}")
        return AdminAccount(email=email.strip().lower(), name=name, role=role)
