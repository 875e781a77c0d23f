"""
Checkout route.

Turns a completed storefront checkout into an order. Custom services the
customer submitted through the quote flow during this session are added
as custom-service lines, then cleared from the session.
"""

import bleach
from flask import Blueprint, current_app, jsonify, request, session

from core.exceptions import ValidationError
from core.validation import require_fields
from models.money import MAX_AMOUNT, parse_amount
from models.order import Customer, ProductLine
from services import service_intake
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

checkout_bp = Blueprint("checkout", __name__)

MAX_NAME_LENGTH = 255


def _clean(text, max_length: int = MAX_NAME_LENGTH) -> str:
    if not text:
        return ""
    return bleach.clean(str(text).strip(), tags=[], strip=True)[:max_length]


def _product_line(data) -> ProductLine:
    """Build a product line from one checkout item."""
    if not isinstance(data, dict):
        raise ValidationError("Each item must be an object", field="items")
    require_fields(data, ("name", "price"))
    try:
        line = ProductLine(
            product_id=data.get("product_id"),
            name=_clean(data["name"]),
            description=_clean(data.get("description"), 2000),
            unit_price=parse_amount(data["price"]),
            quantity=int(data.get("quantity", 1)),
            unit_cost=parse_amount(data.get("cost", 0)),
            taxable=bool(data.get("taxable", True)),
        )
        if line.extension > MAX_AMOUNT:
            raise ValueError(f"line total exceeds {MAX_AMOUNT}")
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid item: {e}", field="items")
    return line


@checkout_bp.route("/api/orders", methods=["POST"])
def create_order():
    """
    Create an order from the checkout form.

    Body:
        first_name, last_name, email
        items: [{product_id, name, description, price, quantity, cost, taxable}]
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ("first_name", "last_name", "email"))

    items = data.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")

    customer = Customer(
        first_name=_clean(data["first_name"]),
        last_name=_clean(data["last_name"]),
        email=_clean(data["email"]).lower(),
    )
    product_lines = [_product_line(item) for item in items]
    service_lines = service_intake.pending_lines(session)

    ledger = current_app.config["ORDER_LEDGER"]
    order = ledger.create_order(customer, product_lines, service_lines)
    service_intake.clear_pending(session)

    logger.info(f"Checkout completed: order {order.id} for {customer.email}")
    return jsonify(order.to_dict()), 201
