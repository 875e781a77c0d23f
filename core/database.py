"""
Relational store access.

A thin wrapper over a SQLAlchemy Engine. The core issues plain SQL through
``sqlalchemy.text()`` with bound parameters and gets rows back as dicts;
no ORM mapping is involved.

Errors from SQLAlchemy are NOT translated here. The services that own a
business operation catch them at their boundary and raise PersistenceError,
so they can log the operation that failed.

Usage:
    db = Database.from_url("postgresql+psycopg://...")
    rows = db.fetch_all("SELECT * FROM orders WHERE id = :id", {"id": 7})

    with db.transaction() as tx:
        tx.execute("UPDATE orders SET status = :s WHERE id = :id", {...})
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

Row = Dict[str, Any]


class Transaction:
    """Statement runner bound to one open connection/transaction."""

    def __init__(self, connection: Connection):
        self._connection = connection

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Run a statement and return the affected row count."""
        result = self._connection.execute(text(sql), dict(params or {}))
        return result.rowcount

    def fetch_all(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        result = self._connection.execute(text(sql), dict(params or {}))
        return [dict(row) for row in result.mappings()]

    def fetch_one(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Row]:
        result = self._connection.execute(text(sql), dict(params or {}))
        row = result.mappings().first()
        return dict(row) if row is not None else None


class Database:
    """
    Parameterised query execution against a shared relational store.

    Pool size, timeouts and isolation level are whatever the engine was
    configured with.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> "Database":
        engine = create_engine(url, future=True, **engine_kwargs)
        logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Open a transaction; commits on success, rolls back on error."""
        with self._engine.begin() as connection:
            yield Transaction(connection)

    def fetch_all(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        with self.transaction() as tx:
            return tx.fetch_all(sql, params)

    def fetch_one(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Row]:
        with self.transaction() as tx:
            return tx.fetch_one(sql, params)

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        with self.transaction() as tx:
            return tx.execute(sql, params)

    def dispose(self) -> None:
        self._engine.dispose()


# =============================================================================
# LOCAL SCHEMA
# =============================================================================
# Tables the core reads and writes. Production databases are provisioned
# separately; this exists for local development and the test suite.

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS admin_users (
        id INTEGER PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash VARCHAR(255) NOT NULL,
        name VARCHAR(255) NOT NULL,
        role VARCHAR(32) NOT NULL DEFAULT 'admin'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY,
        first_name VARCHAR(255) NOT NULL DEFAULT '',
        last_name VARCHAR(255) NOT NULL DEFAULT '',
        email VARCHAR(255) NOT NULL DEFAULT '',
        status VARCHAR(32) NOT NULL DEFAULT 'pending',
        product_subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0,
        service_subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0,
        tax_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        total_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        total_profit NUMERIC(10, 2) NOT NULL DEFAULT 0,
        total_paid NUMERIC(10, 2) NOT NULL DEFAULT 0,
        payment_status VARCHAR(32) NOT NULL DEFAULT 'pending',
        contains_services BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(id),
        product_id INTEGER,
        name VARCHAR(255) NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        quantity INTEGER NOT NULL DEFAULT 1,
        price_at_time NUMERIC(10, 2) NOT NULL,
        cost_at_time NUMERIC(10, 2) NOT NULL DEFAULT 0,
        taxable BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS order_services (
        id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(id),
        description TEXT NOT NULL DEFAULT '',
        quoted_price NUMERIC(10, 2) NOT NULL,
        cost_basis NUMERIC(10, 2) NOT NULL DEFAULT 0,
        notes TEXT NOT NULL DEFAULT '',
        preferred_date VARCHAR(32) NOT NULL DEFAULT '',
        preferred_time VARCHAR(32) NOT NULL DEFAULT '',
        street VARCHAR(255) NOT NULL DEFAULT '',
        city VARCHAR(255) NOT NULL DEFAULT '',
        state VARCHAR(64) NOT NULL DEFAULT '',
        zip_code VARCHAR(32) NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS order_payments (
        id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(id),
        amount NUMERIC(10, 2) NOT NULL,
        payment_method VARCHAR(64) NOT NULL,
        payment_type VARCHAR(32) NOT NULL,
        notes TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS email_logs (
        id INTEGER PRIMARY KEY,
        order_id INTEGER NOT NULL REFERENCES orders(id),
        subject VARCHAR(255) NOT NULL DEFAULT '',
        content TEXT NOT NULL DEFAULT '',
        template_id VARCHAR(64),
        sent_at TIMESTAMP NOT NULL
    )
    """,
)


def ensure_schema(db: Database) -> None:
    """Create the core tables if they do not exist."""
    with db.transaction() as tx:
        for statement in SCHEMA_STATEMENTS:
            tx.execute(statement)
    logger.info("Database schema verified")
