"""
Data models for the storefront admin.

This module contains dataclasses for:
- Order: Customer order with product lines, custom-service lines and totals
- CustomServiceRequest: Quote in progress, owned by one quoting session
- EmailLogEntry: Append-only record of an email sent about an order
- Payment: Manually recorded payment against an order

Orders, lines and totals are frozen; the ledger derives new instances
instead of editing them. CustomServiceRequest is the one mutable model,
changed only through its setters.
"""

from .order import (
    Customer,
    Order,
    OrderStatus,
    OrderTotals,
    ProductLine,
    ServiceLine,
    TERMINAL_STATUSES,
)
from .service_request import CustomServiceRequest, ServiceAddress
from .email_log import EmailLogEntry, PREVIEW_LENGTH
from .payment import Payment, PaymentStatus, PaymentSummary, PaymentType

__all__ = [
    # Order models
    "Customer",
    "Order",
    "OrderStatus",
    "OrderTotals",
    "ProductLine",
    "ServiceLine",
    "TERMINAL_STATUSES",
    # Quote intake
    "CustomServiceRequest",
    "ServiceAddress",
    # Notifications
    "EmailLogEntry",
    "PREVIEW_LENGTH",
    # Payments
    "Payment",
    "PaymentStatus",
    "PaymentSummary",
    "PaymentType",
]
