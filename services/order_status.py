"""
Order status workflow.

Moves an order between statuses and logs the customer email that goes out
with each change. Completed and cancelled orders are final.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.database import Database
from core.exceptions import (
    NotFoundError,
    OrderLockedError,
    PersistenceError,
    ValidationError,
)
from core.validation import require_positive_id
from models.order import Order, OrderStatus
from services.email_templates import status_email
from services.notification_log import NotificationLog
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

_UPDATE_STATUS_SQL = """
    UPDATE orders
    SET status = :status
    WHERE id = :order_id
      AND status NOT IN (:completed, :cancelled)
    RETURNING *
"""

_SELECT_STATUS_SQL = "SELECT status FROM orders WHERE id = :order_id"


def parse_status(value: Optional[str]) -> OrderStatus:
    """
    Raises:
        ValidationError: Missing or unknown status
    """
    if not value:
        raise ValidationError("Missing required fields: status", field="status")
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            "Invalid status value. Must be one of: " + ", ".join(OrderStatus.values()),
            field="status",
        )


class OrderStatusService:
    """Changes order status and records the matching notification."""

    def __init__(self, db: Database, notifications: NotificationLog):
        self._db = db
        self._notifications = notifications

    def change_status(self, order_id: int, status: str, note: Optional[str] = None) -> Order:
        """
        Move an order to a new status.

        Args:
            order_id: Positive integer order id
            status: Target status value (see OrderStatus)
            note: Optional extra paragraph for the customer email

        Returns:
            The updated order (totals as stored, lines not loaded)

        Raises:
            ValidationError: Invalid id or status
            NotFoundError: No such order
            OrderLockedError: Order already completed or cancelled
            PersistenceError: Store failure
        """
        order_id = require_positive_id(order_id, "Order ID")
        new_status = parse_status(status)

        try:
            with self._db.transaction() as tx:
                row = tx.fetch_one(_UPDATE_STATUS_SQL, {
                    "order_id": order_id,
                    "status": new_status.value,
                    "completed": OrderStatus.COMPLETED.value,
                    "cancelled": OrderStatus.CANCELLED.value,
                })
                if row is None:
                    current = tx.fetch_one(_SELECT_STATUS_SQL, {"order_id": order_id})
                    if current is None:
                        raise NotFoundError("Order", order_id)
                    raise OrderLockedError(order_id, current["status"])

                order = Order.from_rows(row)
                email = status_email(order, new_status, note)
                self._notifications.record(
                    order_id,
                    subject=email.subject,
                    content=email.content,
                    template_id=email.template_id,
                    tx=tx,
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to change status of order {order_id}: {e}", exc_info=True)
            raise PersistenceError("order status change", e) from e

        logger.info(f"Order {order_id} status -> {new_status.value}")
        return order
