"""
Services layer for the storefront admin.

This module contains the business logic services:
- OrderLedger: Order totals, line edits, payments
- OrderStatusService: Status changes with customer notification
- NotificationLog: Email history per order
- OrderMailer: Admin preview and send of templated order emails
- email_templates: Confirmation and status email bodies
- AdminAccounts: Admin credential checks for login
- TaxPolicy: Sales tax on taxable product lines
- service_intake: Custom service request kept in the HTTP session

Every service that touches the database converts storage failures into
PersistenceError at its boundary.
"""

from .tax_policy import TaxPolicy
from .notification_log import NotificationLog
from .order_ledger import OrderLedger, compute_totals
from .order_status import OrderStatusService
from .order_mailer import OrderMailer
from .admin_accounts import AdminAccounts, AdminAccount

__all__ = [
    "TaxPolicy",
    "NotificationLog",
    "OrderLedger",
    "compute_totals",
    "OrderStatusService",
    "OrderMailer",
    "AdminAccounts",
    "AdminAccount",
]
