"""
Shared fixtures for the storefront admin tests.

Each test gets a fresh app over its own SQLite file, so orders, email logs
and admin accounts never leak between tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest

from app import create_app
from config import TestingConfig
from models.order import Customer, ProductLine, ServiceLine


# Fixtures

@pytest.fixture
def app(tmp_path):
    """Create an app backed by a temporary SQLite database."""
    application = create_app(
        TestingConfig,
        overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'storefront-test.db'}"},
    )
    yield application
    application.config["DATABASE"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return app.config["DATABASE"]


@pytest.fixture
def ledger(app):
    return app.config["ORDER_LEDGER"]


@pytest.fixture
def notification_log(app):
    return app.config["NOTIFICATION_LOG"]


@pytest.fixture
def make_token():
    """Factory for signed tokens with arbitrary claims."""

    def _make(role="admin", secret=TestingConfig.JWT_SECRET, expires_in=3600, **claims):
        payload = {"email": "admin@example.com", "name": "Admin", **claims}
        if role is not None:
            payload["role"] = role
        if expires_in is not None:
            payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def admin_headers(make_token):
    """Authorization header carrying a valid admin token."""
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def sample_lines():
    """
    Product lines totaling 250.00 and one 75.00 custom service.

    Cost basis: 120.00 + 2 x 5.00 + 30.00 = 160.00
    """
    products = [
        ProductLine(name="Analog Mixer", unit_price=Decimal("200.00"), quantity=1,
                    unit_cost=Decimal("120.00"), product_id=11),
        ProductLine(name="XLR Cable", unit_price=Decimal("25.00"), quantity=2,
                    unit_cost=Decimal("5.00"), product_id=12),
    ]
    services = [
        ServiceLine(description="Speaker installation", quoted_price=Decimal("75.00"),
                    cost_basis=Decimal("30.00")),
    ]
    return products, services


@pytest.fixture
def customer():
    return Customer(first_name="Dana", last_name="Reyes", email="dana@example.com")


@pytest.fixture
def stored_order(ledger, customer, sample_lines):
    """An order persisted through the ledger (status: pending)."""
    products, services = sample_lines
    return ledger.create_order(customer, products, services)
