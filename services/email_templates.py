"""
Customer email templates.

Every email the shop sends about an order is rendered here, whether it
goes out automatically (checkout confirmation, status change) or an admin
sends it by hand from the order page. Template ids are what the email log
stores in ``template_id``:

    order_confirmation
    status_pending, status_confirmed, status_delayed,
    status_completed, status_cancelled
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from core.exceptions import ValidationError
from models.order import Order, OrderStatus


CONFIRMATION_TEMPLATE = "order_confirmation"
STATUS_TEMPLATE_PREFIX = "status_"

STATUS_MESSAGES = {
    OrderStatus.PENDING: "We have received your order and will review it shortly.",
    OrderStatus.CONFIRMED: "Your order has been confirmed and is being prepared.",
    OrderStatus.DELAYED: "Your order has been delayed. We will be in touch with a new date.",
    OrderStatus.COMPLETED: "Your order is complete. Thank you for shopping with us!",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


@dataclass(frozen=True)
class RenderedEmail:
    """Subject and body ready to send (or preview)."""

    template_id: str
    subject: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "template_id": self.template_id,
            "subject": self.subject,
            "content": self.content,
        }


def template_ids() -> List[str]:
    return [CONFIRMATION_TEMPLATE] + [
        f"{STATUS_TEMPLATE_PREFIX}{status.value}" for status in OrderStatus
    ]


def confirmation_email(order: Order) -> RenderedEmail:
    lines = [f"Hi {order.customer.first_name or 'there'},", "",
             f"Thank you for your order #{order.id}.", ""]
    for item in order.product_lines:
        lines.append(f"  {item.quantity} x {item.name} @ ${item.unit_price}")
    for service in order.service_lines:
        lines.append(f"  Custom service: {service.description or 'Custom service'} ${service.quoted_price}")
    totals = order.totals
    lines += [
        "",
        f"Products: ${totals.product_subtotal}",
        f"Services: ${totals.service_subtotal}",
        f"Tax: ${totals.tax_amount}",
        f"Total: ${totals.total}",
    ]
    return RenderedEmail(
        template_id=CONFIRMATION_TEMPLATE,
        subject=f"Order #{order.id} received",
        content="\n".join(lines),
    )


def status_email(order: Order, status: OrderStatus, note: Optional[str] = None) -> RenderedEmail:
    body = [
        f"Hi {order.customer.first_name or 'there'},",
        "",
        STATUS_MESSAGES[status],
    ]
    if note:
        body += ["", note]
    body += ["", f"Order #{order.id} total: ${order.totals.total}"]
    return RenderedEmail(
        template_id=f"{STATUS_TEMPLATE_PREFIX}{status.value}",
        subject=f"Order #{order.id} update: {status.value}",
        content="\n".join(body),
    )


def render(template_id: Optional[str], order: Order, note: Optional[str] = None) -> RenderedEmail:
    """
    Render a template by id.

    Raises:
        ValidationError: "Template ID is required" / "Invalid template ID"
    """
    if template_id is None or template_id == "":
        raise ValidationError("Template ID is required", field="template_id")
    if not isinstance(template_id, str):
        raise ValidationError("Invalid template ID", field="template_id")
    note = str(note).strip() if note else None
    if template_id == CONFIRMATION_TEMPLATE:
        return confirmation_email(order)
    if template_id.startswith(STATUS_TEMPLATE_PREFIX):
        try:
            status = OrderStatus(template_id[len(STATUS_TEMPLATE_PREFIX):])
        except ValueError:
            status = None
        if status is not None:
            return status_email(order, status, note)
    raise ValidationError("Invalid template ID", field="template_id")
