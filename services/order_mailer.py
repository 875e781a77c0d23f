"""
Admin-initiated order emails.

From the order page an admin can preview any template against the current
order and then send it. Sending appends to the email log exactly like the
automatic confirmation and status emails; previewing writes nothing.
"""

from __future__ import annotations

from typing import Optional

from models.email_log import EmailLogEntry
from services import email_templates
from services.email_templates import RenderedEmail
from services.notification_log import NotificationLog
from services.order_ledger import OrderLedger
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class OrderMailer:
    """Renders and records templated emails for an order."""

    def __init__(self, ledger: OrderLedger, notifications: NotificationLog):
        self._ledger = ledger
        self._notifications = notifications

    def preview(self, order_id: int, template_id: Optional[str],
                note: Optional[str] = None) -> RenderedEmail:
        """
        Render a template for an order without sending it.

        Raises:
            ValidationError: Invalid order id, missing or unknown template
            NotFoundError: No such order
            PersistenceError: Store failure
        """
        order = self._ledger.get_order(order_id)
        return email_templates.render(template_id, order, note)

    def send(self, order_id: int, template_id: Optional[str],
             note: Optional[str] = None) -> EmailLogEntry:
        """Render a template and record it as sent."""
        email = self.preview(order_id, template_id, note)
        entry = self._notifications.record(
            order_id,
            subject=email.subject,
            content=email.content,
            template_id=email.template_id,
        )
        logger.info(f"Admin sent {email.template_id} for order {order_id}")
        return entry
