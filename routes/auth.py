"""
Admin authentication routes.

Handles:
- POST /api/auth/login  - Check credentials, issue token, set auth_token cookie
- GET  /api/auth/check  - Report the signed-in admin (gated)
- POST /api/auth/logout - Delete the cookie (always succeeds)
"""

from flask import Blueprint, current_app, g, jsonify, request

from core.session_gate import admin_required
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Sign an admin in.

    Body: {"email": ..., "password": ...}
    On success the token is set as an HttpOnly cookie and also returned,
    for API clients that send it as a Bearer header.
    """
    data = request.get_json(silent=True) or {}
    accounts = current_app.config["ADMIN_ACCOUNTS"]
    gate = current_app.config["SESSION_GATE"]

    account = accounts.authenticate(data.get("email"), data.get("password"))
    token = gate.verifier.issue(account.email, account.name, account.role)

    logger.info(f"Admin {account.email} signed in")
    response = jsonify({
        "success": True,
        "token": token,
        "user": {"email": account.email, "name": account.name, "role": account.role.value},
        "redirectTo": "/admin/orders",
    })
    return gate.set_cookie(response, token)


@auth_bp.route("/check", methods=["GET"])
@admin_required
def check():
    """Confirm the current session and describe the admin."""
    claims = g.admin_claims
    return jsonify({
        "authenticated": True,
        "user": {
            "email": claims.get("email"),
            "name": claims.get("name"),
            "role": claims.get("role"),
        },
    })


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """
    Sign out.

    Unconditional and idempotent: the cookie is deleted whether or not it
    was present or valid.
    """
    gate = current_app.config["SESSION_GATE"]
    return gate.clear_cookie(jsonify({"success": True}))
