"""
Notification log service.

Append-only record of the emails sent about each order. Order-status
changes and checkout confirmations write here; the admin order page reads
the history back, newest first, with a short preview of each body.

Storage failures are caught at this boundary, logged with full detail and
re-raised as PersistenceError, so routes never see a raw SQLAlchemy error.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from core.database import Database, Transaction
from core.exceptions import PersistenceError
from core.validation import require_positive_id
from models.email_log import EmailLogEntry
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

_INSERT_SQL = """
    INSERT INTO email_logs (order_id, subject, content, template_id, sent_at)
    VALUES (:order_id, :subject, :content, :template_id, :sent_at)
    RETURNING id, order_id, subject, content, template_id, sent_at
"""

_LIST_SQL = """
    SELECT id, order_id, subject, content, template_id, sent_at
    FROM email_logs
    WHERE order_id = :order_id
    ORDER BY sent_at DESC, id DESC
"""


class NotificationLog:
    """Reads and appends email log entries."""

    def __init__(self, db: Database):
        self._db = db

    def list_for_order(self, order_id: int) -> List[EmailLogEntry]:
        """
        All entries for an order, most recent first.

        Args:
            order_id: Positive integer order id

        Returns:
            Entries ordered by sent_at descending; each exposes .preview

        Raises:
            ValidationError: "Order ID is required" / "Invalid Order ID"
            PersistenceError: If the store fails
        """
        order_id = require_positive_id(order_id, "Order ID")
        try:
            rows = self._db.fetch_all(_LIST_SQL, {"order_id": order_id})
        except SQLAlchemyError as e:
            logger.error(f"Failed to list email logs for order {order_id}: {e}", exc_info=True)
            raise PersistenceError("email log listing", e) from e
        return [EmailLogEntry.from_row(row) for row in rows]

    def record(self, order_id: int, subject: str, content: str,
               template_id: Optional[str] = None,
               sent_at: Optional[datetime] = None,
               tx: Optional[Transaction] = None) -> EmailLogEntry:
        """
        Append an entry for an email that was just dispatched.

        Args:
            order_id: Order the email was about
            subject: Subject line
            content: Body as sent
            template_id: Template name, if any
            sent_at: Dispatch time (defaults to now, UTC)
            tx: Join an open transaction instead of starting one

        Returns:
            The stored entry
        """
        order_id = require_positive_id(order_id, "Order ID")
        sent_at = (sent_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
        params = {
            "order_id": order_id,
            "subject": subject,
            "content": content,
            "template_id": template_id,
            # ISO text sorts correctly and reads back the same on every backend
            "sent_at": sent_at.isoformat(timespec="microseconds"),
        }
        try:
            if tx is not None:
                row = tx.fetch_one(_INSERT_SQL, params)
            else:
                with self._db.transaction() as own_tx:
                    row = own_tx.fetch_one(_INSERT_SQL, params)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record email for order {order_id}: {e}", exc_info=True)
            raise PersistenceError("email log write", e) from e

        logger.info(f"Recorded email '{subject}' for order {order_id}")
        return EmailLogEntry.from_row(row)
