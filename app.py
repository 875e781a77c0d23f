"""
Storefront Admin - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and builds the immutable runtime settings
   (fail-fast: no JWT_SECRET, no app)
2. Connects the relational store
3. Creates the services (token verifier, session gate, ledger,
   status workflow, notification log, order mailer, admin accounts)
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Request
    ├── Session gate (privileged routes) -> token verifier
    └── Route handler
        ├── OrderLedger         (totals, line edits, payments)
        ├── OrderStatusService  (status + notification)
        ├── NotificationLog     (email history)
        └── OrderMailer         (admin template preview and send)

Services are created once here and stored in app.config; routes read them
from current_app.config.
"""

from __future__ import annotations

import atexit
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.database import Database, ensure_schema
from core.exceptions import ConfigurationError, StorefrontError
from core.session_gate import SessionGate
from core.settings import AuthSettings, LedgerSettings
from core.token_verifier import TokenVerifier
from services.admin_accounts import AdminAccounts
from services.notification_log import NotificationLog
from services.order_ledger import OrderLedger
from services.order_mailer import OrderMailer
from services.order_status import OrderStatusService
from services.tax_policy import TaxPolicy
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(config_object: Any = None,
               overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Application factory - creates and configures the Flask app.

    Args:
        config_object: Config class or import path (default: picked from FLASK_ENV)
        overrides: Extra config values applied last (tests)

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If JWT_SECRET is missing or TAX_RATE is invalid
    """
    load_dotenv()

    app = Flask(__name__)
    if config_object is None:
        from config import CONFIG_BY_ENVIRONMENT, Config
        config_object = CONFIG_BY_ENVIRONMENT.get(os.environ.get("FLASK_ENV", ""), Config)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=app.config.get("ENVIRONMENT") == "production",
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting storefront admin in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SETTINGS (FAIL-FAST)
    # =========================================================================

    try:
        auth_settings = AuthSettings.from_config(app.config)
        ledger_settings = LedgerSettings.from_config(app.config)
    except ConfigurationError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    # =========================================================================
    # DATABASE
    # =========================================================================

    database_url = app.config["DATABASE_URL"]
    if database_url.startswith("sqlite:///"):
        # Ensure the folder for a file-backed SQLite database exists
        Path(database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    database = Database.from_url(database_url)
    if app.config.get("CREATE_SCHEMA"):
        ensure_schema(database)
    app.config["DATABASE"] = database

    # =========================================================================
    # SERVICES
    # =========================================================================

    verifier = TokenVerifier(auth_settings)
    notification_log = NotificationLog(database)

    app.config["SESSION_GATE"] = SessionGate(verifier)
    app.config["NOTIFICATION_LOG"] = notification_log
    ledger = OrderLedger(
        database, TaxPolicy.from_settings(ledger_settings), notification_log
    )
    app.config["ORDER_LEDGER"] = ledger
    app.config["ORDER_MAILER"] = OrderMailer(ledger, notification_log)
    app.config["ORDER_STATUS_SERVICE"] = OrderStatusService(database, notification_log)
    app.config["ADMIN_ACCOUNTS"] = AdminAccounts(database)
    logger.info(f"Services initialized (tax rate {ledger_settings.tax_rate})")

    atexit.register(database.dispose)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e: StorefrontError):
        if e.status_code >= 500:
            logger.error(f"{e.status_code} error: {e}")
        else:
            logger.info(f"{e.status_code} error: {e}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=app.config.get("DEBUG", False))
