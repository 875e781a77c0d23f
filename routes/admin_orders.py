"""
Admin order routes (all gated).

Handles:
- GET   /api/admin/orders/<order_id>             - Order with lines and totals
- POST  /api/admin/orders/<order_id>/recompute   - Recompute stored totals
- PUT   /api/admin/order-items/<item_id>         - Edit a line, reconcile totals
- PUT   /api/admin/order-services/<service_id>   - Reprice a custom service, reconcile totals
- PATCH /api/admin/orders/<order_id>/status      - Change status, log email
- GET   /api/admin/orders/<order_id>/email-logs  - Email history, newest first
- GET   /api/admin/orders/<order_id>/preview-template - Render an email template
- POST  /api/admin/orders/<order_id>/send-template    - Send a template, log it
- GET   /api/admin/orders/<order_id>/payments    - Payment history and balance
- POST  /api/admin/orders/<order_id>/payments    - Record a manual payment

Path ids arrive as strings and are parsed here; bad ids are 400s, unknown
ids are 404s.
"""

from flask import Blueprint, current_app, jsonify, request

from core.session_gate import admin_required
from core.validation import parse_id
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

admin_orders_bp = Blueprint("admin_orders", __name__, url_prefix="/api/admin")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@admin_orders_bp.route("/orders/<order_id>", methods=["GET"])
@admin_required
def get_order(order_id):
    ledger = current_app.config["ORDER_LEDGER"]
    order = ledger.get_order(parse_id(order_id, "Order ID"))
    return jsonify(order.to_dict())


@admin_orders_bp.route("/orders/<order_id>/recompute", methods=["POST"])
@admin_required
def recompute_order(order_id):
    ledger = current_app.config["ORDER_LEDGER"]
    order = ledger.recompute_stored(parse_id(order_id, "Order ID"))
    return jsonify(order.to_dict())


@admin_orders_bp.route("/order-items/<item_id>", methods=["PUT", "PATCH"])
@admin_required
def update_order_item(item_id):
    """
    Edit one order line.

    Body requires name, price and description. Returns the edited line and
    the order with its reconciled totals.
    """
    ledger = current_app.config["ORDER_LEDGER"]
    item_id = parse_id(item_id, "Item ID")
    order = ledger.apply_update(item_id, _json_body())

    item = next(line for line in order.product_lines if line.id == item_id)
    return jsonify({"item": item.to_dict(), "order": order.to_dict()})


@admin_orders_bp.route("/order-services/<service_id>", methods=["PUT", "PATCH"])
@admin_required
def update_order_service(service_id):
    """
    Reprice one custom-service line.

    Body requires quoted_price; description is optional. Returns the line
    and the order with its reconciled totals.
    """
    ledger = current_app.config["ORDER_LEDGER"]
    service_id = parse_id(service_id, "Service ID")
    order = ledger.apply_service_update(service_id, _json_body())

    service = next(line for line in order.service_lines if line.id == service_id)
    return jsonify({"service": service.to_dict(), "order": order.to_dict()})


@admin_orders_bp.route("/orders/<order_id>/status", methods=["PATCH"])
@admin_required
def change_status(order_id):
    data = _json_body()
    status_service = current_app.config["ORDER_STATUS_SERVICE"]
    order = status_service.change_status(
        parse_id(order_id, "Order ID"), data.get("status"), data.get("note")
    )
    return jsonify({
        "success": True,
        "message": f"Order status updated to {order.status.value}",
        "order": order.to_dict(),
    })


@admin_orders_bp.route("/orders/<order_id>/email-logs", methods=["GET"])
@admin_required
def list_email_logs(order_id):
    notification_log = current_app.config["NOTIFICATION_LOG"]
    entries = notification_log.list_for_order(parse_id(order_id, "Order ID"))
    return jsonify([entry.to_dict() for entry in entries])


@admin_orders_bp.route("/orders/<order_id>/preview-template", methods=["GET"])
@admin_required
def preview_template(order_id):
    """Render a template for the order; nothing is sent or logged."""
    mailer = current_app.config["ORDER_MAILER"]
    email = mailer.preview(
        parse_id(order_id, "Order ID"),
        request.args.get("template_id") or request.args.get("templateId"),
        request.args.get("note"),
    )
    return jsonify(email.to_dict())


@admin_orders_bp.route("/orders/<order_id>/send-template", methods=["POST"])
@admin_required
def send_template(order_id):
    data = _json_body()
    mailer = current_app.config["ORDER_MAILER"]
    entry = mailer.send(
        parse_id(order_id, "Order ID"),
        data.get("template_id") or data.get("templateId"),
        data.get("note"),
    )
    return jsonify({"success": True, "email": entry.to_dict()}), 201


@admin_orders_bp.route("/orders/<order_id>/payments", methods=["GET"])
@admin_required
def get_payments(order_id):
    ledger = current_app.config["ORDER_LEDGER"]
    summary = ledger.payment_summary(parse_id(order_id, "Order ID"))
    return jsonify({"success": True, **summary.to_dict()})


@admin_orders_bp.route("/orders/<order_id>/payments", methods=["POST"])
@admin_required
def record_payment(order_id):
    data = _json_body()
    ledger = current_app.config["ORDER_LEDGER"]
    summary = ledger.record_payment(
        parse_id(order_id, "Order ID"),
        data.get("amount"),
        data.get("payment_method") or data.get("paymentMethod"),
        data.get("notes", ""),
    )
    return jsonify({"success": True, **summary.to_dict()}), 201
