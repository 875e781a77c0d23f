"""
Flask route blueprints for the storefront admin.

This module contains all route handlers organized by functionality:
- main: Health check
- auth: Admin login, session check, logout
- admin_orders: Gated order management (lines, totals, status, emails, payments)
- checkout: Public order creation
- quote: Custom service quote intake

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .auth import auth_bp
from .admin_orders import admin_orders_bp
from .checkout import checkout_bp
from .quote import quote_bp

__all__ = [
    "main_bp",
    "auth_bp",
    "admin_orders_bp",
    "checkout_bp",
    "quote_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_orders_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(quote_bp)
