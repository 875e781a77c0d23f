"""
Order ledger service.

Derives and stores an order's financial breakdown from its lines:

    product_subtotal = sum(unit_price x quantity)      over product lines
    service_subtotal = sum(quoted_price)                over custom services
    tax_amount       = TaxPolicy applied to taxable product lines
    total            = product_subtotal + service_subtotal + tax_amount
    total_profit     = total - sum(cost basis)          over all lines

Every amount is a two-digit Decimal, so recomputing the same lines always
gives identical totals and recomputing twice changes nothing.

ATOMIC WRITES:
    Line edits and total updates are single conditional statements
    (UPDATE ... WHERE <exists and not terminal> RETURNING ...). A missing
    row shows up as "no row returned" and is reported as not found, never
    as a silent success. There are no retries: a failed write is reported
    and nothing is applied twice.

Usage:
    ledger = OrderLedger(db, TaxPolicy(Decimal("0.0775")), notification_log)

    order = ledger.create_order(customer, product_lines, service_lines)
    order = ledger.apply_update(item_id, {"name": ..., "price": ..., "description": ...})
    order = ledger.apply_service_update(service_id, {"quoted_price": ..., "description": ...})
    order = ledger.recompute_stored(order.id)
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from core.database import Database, Transaction
from core.exceptions import (
    NotFoundError,
    OrderLockedError,
    PersistenceError,
    StorefrontError,
    ValidationError,
)
from core.validation import require_fields, require_positive_id
from models.money import MAX_AMOUNT, ZERO, money_param, money_sum, parse_amount, to_money
from models.order import (
    Customer,
    Order,
    OrderStatus,
    OrderTotals,
    ProductLine,
    ServiceLine,
)
from models.payment import Payment, PaymentStatus, PaymentSummary, PaymentType
from services.email_templates import confirmation_email
from services.notification_log import NotificationLog
from services.tax_policy import TaxPolicy
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

UPDATE_FIELDS = ("name", "price", "description")
SERVICE_UPDATE_FIELDS = ("quoted_price",)

_TERMINAL_PARAMS = {
    "completed": OrderStatus.COMPLETED.value,
    "cancelled": OrderStatus.CANCELLED.value,
}


# =============================================================================
# SQL
# =============================================================================

_SELECT_ORDER_SQL = "SELECT * FROM orders WHERE id = :order_id"

_SELECT_ITEMS_SQL = "SELECT * FROM order_items WHERE order_id = :order_id ORDER BY id"

_SELECT_SERVICES_SQL = "SELECT * FROM order_services WHERE order_id = :order_id ORDER BY id"

_INSERT_ORDER_SQL = """
    INSERT INTO orders (first_name, last_name, email, status, contains_services)
    VALUES (:first_name, :last_name, :email, :status, :contains_services)
    RETURNING id
"""

_INSERT_ITEM_SQL = """
    INSERT INTO order_items
        (order_id, product_id, name, description, quantity, price_at_time, cost_at_time, taxable)
    VALUES
        (:order_id, :product_id, :name, :description, :quantity, :price, :cost, :taxable)
"""

_INSERT_SERVICE_SQL = """
    INSERT INTO order_services
        (order_id, description, quoted_price, cost_basis, notes,
         preferred_date, preferred_time, street, city, state, zip_code)
    VALUES
        (:order_id, :description, :quoted_price, :cost_basis, :notes,
         :preferred_date, :preferred_time, :street, :city, :state, :zip_code)
"""

_UPDATE_TOTALS_SQL = """
    UPDATE orders
    SET product_subtotal = :product_subtotal,
        service_subtotal = :service_subtotal,
        tax_amount = :tax_amount,
        total_amount = :total,
        total_profit = :total_profit,
        contains_services = :contains_services
    WHERE id = :order_id
      AND status NOT IN (:completed, :cancelled)
    RETURNING id
"""

_UPDATE_ITEM_SQL = """
    UPDATE order_items
    SET name = :name,
        price_at_time = :price,
        description = :description
    WHERE id = :item_id
      AND order_id IN (
          SELECT id FROM orders WHERE status NOT IN (:completed, :cancelled)
      )
    RETURNING id, order_id
"""

_SELECT_ITEM_OWNER_SQL = """
    SELECT o.id AS order_id, o.status AS status
    FROM order_items i JOIN orders o ON o.id = i.order_id
    WHERE i.id = :item_id
"""

_UPDATE_SERVICE_SQL = """
    UPDATE order_services
    SET quoted_price = :quoted_price,
        description = COALESCE(:description, description)
    WHERE id = :service_id
      AND order_id IN (
          SELECT id FROM orders WHERE status NOT IN (:completed, :cancelled)
      )
    RETURNING id, order_id
"""

_SELECT_SERVICE_OWNER_SQL = """
    SELECT o.id AS order_id, o.status AS status
    FROM order_services s JOIN orders o ON o.id = s.order_id
    WHERE s.id = :service_id
"""

_SELECT_PAYMENTS_SQL = "SELECT * FROM order_payments WHERE order_id = :order_id ORDER BY id"

_INSERT_PAYMENT_SQL = """
    INSERT INTO order_payments (order_id, amount, payment_method, payment_type, notes, created_at)
    VALUES (:order_id, :amount, :payment_method, :payment_type, :notes, :created_at)
    RETURNING *
"""

_UPDATE_PAID_SQL = """
    UPDATE orders
    SET total_paid = :total_paid,
        payment_status = :payment_status
    WHERE id = :order_id
      AND total_paid = :previous_paid
    RETURNING id
"""


# =============================================================================
# PURE COMPUTATION
# =============================================================================

def compute_totals(product_lines: Sequence[ProductLine],
                   service_lines: Sequence[ServiceLine],
                   tax_policy: TaxPolicy) -> OrderTotals:
    """
    Derive the financial breakdown for a set of lines.

    Deterministic: the same lines and policy always give identical totals.
    """
    product_subtotal = money_sum(line.extension for line in product_lines)
    service_subtotal = money_sum(line.quoted_price for line in service_lines)
    tax_amount = tax_policy.tax_for(product_lines)
    total = money_sum([product_subtotal, service_subtotal, tax_amount])

    cost_basis = money_sum(
        [line.cost_basis for line in product_lines]
        + [line.cost_basis for line in service_lines]
    )
    # Profit can be negative (sold below cost) but never exceeds the total
    total_profit = to_money(total - cost_basis)

    return OrderTotals(
        product_subtotal=product_subtotal,
        service_subtotal=service_subtotal,
        tax_amount=tax_amount,
        total=total,
        total_profit=total_profit,
    )


def payment_status_for(total: Decimal, paid: Decimal) -> PaymentStatus:
    if paid <= ZERO:
        return PaymentStatus.PENDING
    if paid >= total:
        return PaymentStatus.COMPLETED
    return PaymentStatus.PARTIAL


# =============================================================================
# LEDGER
# =============================================================================

class OrderLedger:
    """
    Computes, stores and reconciles order totals.

    Attributes:
        tax_policy: Policy used for tax_amount
    """

    def __init__(self, db: Database, tax_policy: TaxPolicy,
                 notifications: Optional[NotificationLog] = None):
        self._db = db
        self.tax_policy = tax_policy
        self._notifications = notifications

    # -------------------------------------------------------------------------
    # Storage boundary
    # -------------------------------------------------------------------------

    @contextmanager
    def _storage(self, operation: str) -> Iterator[Transaction]:
        """
        Open a transaction and translate storage failures.

        StorefrontErrors raised inside propagate unchanged (the transaction
        is rolled back); SQLAlchemy errors become PersistenceError.
        """
        try:
            with self._db.transaction() as tx:
                yield tx
        except StorefrontError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage failure during {operation}: {e}", exc_info=True)
            raise PersistenceError(operation, e) from e

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def recompute(self, order: Order) -> Order:
        """
        Return the order with totals derived from its current lines.

        recompute(recompute(o)) == recompute(o).
        """
        return order.with_totals(
            compute_totals(order.product_lines, order.service_lines, self.tax_policy)
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _load(self, tx: Transaction, order_id: int) -> Order:
        row = tx.fetch_one(_SELECT_ORDER_SQL, {"order_id": order_id})
        if row is None:
            raise NotFoundError("Order", order_id)
        items = tx.fetch_all(_SELECT_ITEMS_SQL, {"order_id": order_id})
        services = tx.fetch_all(_SELECT_SERVICES_SQL, {"order_id": order_id})
        return Order.from_rows(row, items, services)

    def get_order(self, order_id: int) -> Order:
        """
        Load an order with its lines and stored totals.

        Raises:
            ValidationError: Invalid order id
            NotFoundError: No such order
            PersistenceError: Store failure
        """
        order_id = require_positive_id(order_id, "Order ID")
        with self._storage("order read") as tx:
            return self._load(tx, order_id)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _store_totals(self, tx: Transaction, order: Order) -> None:
        if order.totals.total > MAX_AMOUNT:
            raise ValidationError(f"Order total cannot exceed {MAX_AMOUNT}")
        params = {"order_id": order.id, "contains_services": order.contains_services}
        params.update({k: money_param(v) for k, v in vars(order.totals).items()})
        params.update(_TERMINAL_PARAMS)
        if tx.fetch_one(_UPDATE_TOTALS_SQL, params) is None:
            # Row vanished or turned terminal after it was read
            current = tx.fetch_one(_SELECT_ORDER_SQL, {"order_id": order.id})
            if current is None:
                raise NotFoundError("Order", order.id)
            raise OrderLockedError(order.id, current["status"])

    def create_order(self, customer: Customer,
                     product_lines: Sequence[ProductLine],
                     service_lines: Sequence[ServiceLine] = ()) -> Order:
        """
        Persist a checked-out order with computed totals.

        The order row, its lines, its totals and the confirmation log entry
        are written in one transaction.

        Raises:
            ValidationError: If the order has no lines
            PersistenceError: Store failure
        """
        if not product_lines and not service_lines:
            raise ValidationError("Order must contain at least one item", field="order_items")

        with self._storage("order creation") as tx:
            row = tx.fetch_one(_INSERT_ORDER_SQL, {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
                "status": OrderStatus.PENDING.value,
                "contains_services": bool(service_lines),
            })
            order_id = row["id"]

            for line in product_lines:
                tx.execute(_INSERT_ITEM_SQL, {
                    "order_id": order_id,
                    "product_id": line.product_id,
                    "name": line.name,
                    "description": line.description,
                    "quantity": line.quantity,
                    "price": money_param(line.unit_price),
                    "cost": money_param(line.unit_cost),
                    "taxable": line.taxable,
                })
            for line in service_lines:
                tx.execute(_INSERT_SERVICE_SQL, {
                    "order_id": order_id,
                    "description": line.description,
                    "quoted_price": money_param(line.quoted_price),
                    "cost_basis": money_param(line.cost_basis),
                    "notes": line.notes,
                    "preferred_date": line.preferred_date,
                    "preferred_time": line.preferred_time,
                    **line.address.to_dict(),
                })

            order = self.recompute(self._load(tx, order_id))
            self._store_totals(tx, order)

            if self._notifications is not None:
                email = confirmation_email(order)
                self._notifications.record(
                    order_id,
                    subject=email.subject,
                    content=email.content,
                    template_id=email.template_id,
                    tx=tx,
                )

        logger.info(f"Created order {order_id}: total {order.totals.total}")
        return order

    def recompute_stored(self, order_id: int) -> Order:
        """
        Reload an order's lines, recompute and store its totals.

        Raises:
            ValidationError: Invalid order id
            NotFoundError: No such order
            OrderLockedError: Order is completed or cancelled
            PersistenceError: Store failure
        """
        order_id = require_positive_id(order_id, "Order ID")
        with self._storage("order recompute") as tx:
            order = self._load(tx, order_id)
            if order.status.is_terminal:
                raise OrderLockedError(order_id, order.status.value)
            order = self.recompute(order)
            self._store_totals(tx, order)

        logger.info(f"Recomputed order {order_id}: total {order.totals.total}")
        return order

    def apply_update(self, item_id: int, patch: Mapping[str, Any]) -> Order:
        """
        Edit one product line and reconcile its order's totals.

        Args:
            item_id: Positive integer id of the order line
            patch: Must contain name, price and description (description
                may be an empty string)

        Returns:
            The order the line belongs to, with recomputed totals

        Raises:
            ValidationError: Missing fields, bad price, or invalid id.
                Raised before any write.
            NotFoundError: No line with that id
            OrderLockedError: The line's order is completed or cancelled
            PersistenceError: Store failure
        """
        item_id = require_positive_id(item_id, "Item ID")
        require_fields(patch, UPDATE_FIELDS, allow_blank=("description",))
        price = _parse_price(patch["price"], "price")

        with self._storage("order line update") as tx:
            row = tx.fetch_one(_UPDATE_ITEM_SQL, {
                "item_id": item_id,
                "name": str(patch["name"]).strip(),
                "price": money_param(price),
                "description": str(patch["description"]),
                **_TERMINAL_PARAMS,
            })
            if row is None:
                owner = tx.fetch_one(_SELECT_ITEM_OWNER_SQL, {"item_id": item_id})
                if owner is None:
                    raise NotFoundError("Order item", item_id)
                raise OrderLockedError(owner["order_id"], owner["status"])

            order = self.recompute(self._load(tx, row["order_id"]))
            self._store_totals(tx, order)

        logger.info(f"Updated item {item_id} on order {order.id}: total {order.totals.total}")
        return order

    def apply_service_update(self, service_id: int, patch: Mapping[str, Any]) -> Order:
        """
        Reprice one custom-service line and reconcile its order's totals.

        Args:
            service_id: Positive integer id of the custom-service line
            patch: Must contain quoted_price; description is optional and
                left unchanged when absent

        Returns:
            The order the line belongs to, with recomputed totals

        Raises:
            ValidationError: Missing/bad price or invalid id, before any write
            NotFoundError: No custom-service line with that id
            OrderLockedError: The line's order is completed or cancelled
            PersistenceError: Store failure
        """
        service_id = require_positive_id(service_id, "Service ID")
        require_fields(patch, SERVICE_UPDATE_FIELDS)
        quoted_price = _parse_price(patch["quoted_price"], "quoted_price")
        description = patch.get("description")

        with self._storage("custom service update") as tx:
            row = tx.fetch_one(_UPDATE_SERVICE_SQL, {
                "service_id": service_id,
                "quoted_price": money_param(quoted_price),
                "description": None if description is None else str(description),
                **_TERMINAL_PARAMS,
            })
            if row is None:
                owner = tx.fetch_one(_SELECT_SERVICE_OWNER_SQL, {"service_id": service_id})
                if owner is None:
                    raise NotFoundError("Custom service", service_id)
                raise OrderLockedError(owner["order_id"], owner["status"])

            order = self.recompute(self._load(tx, row["order_id"]))
            self._store_totals(tx, order)

        logger.info(f"Repriced service {service_id} on order {order.id}: total {order.totals.total}")
        return order

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def payment_summary(self, order_id: int) -> PaymentSummary:
        """Payment history and remaining balance for an order."""
        order_id = require_positive_id(order_id, "Order ID")
        with self._storage("payment read") as tx:
            order = self._load(tx, order_id)
            payments = _load_payments(tx, order_id)
        return PaymentSummary(
            order_id=order_id,
            total_amount=order.totals.total,
            total_paid=order.total_paid,
            payment_status=payment_status_for(order.totals.total, order.total_paid),
            payments=payments,
        )

    def record_payment(self, order_id: int, amount: Any, method: str,
                       notes: str = "") -> PaymentSummary:
        """
        Record a payment received outside the system.

        Raises:
            ValidationError: Bad amount/method, or amount above the balance
            NotFoundError: No such order
            OrderLockedError: Order was cancelled
            PersistenceError: Store failure, or a concurrent payment changed
                the balance first
        """
        order_id = require_positive_id(order_id, "Order ID")
        if not method or not str(method).strip():
            raise ValidationError("Missing required fields: payment_method", field="payment_method")
        try:
            amount = parse_amount(amount)
        except ValueError:
            raise ValidationError("Invalid payment amount", field="amount")
        if amount <= ZERO:
            raise ValidationError("Payment amount must be greater than 0", field="amount")

        with self._storage("payment record") as tx:
            order = self._load(tx, order_id)
            if order.status is OrderStatus.CANCELLED:
                raise OrderLockedError(order_id, order.status.value)
            if amount > order.remaining_balance:
                raise ValidationError(
                    f"Payment amount exceeds remaining balance of {order.remaining_balance}",
                    field="amount",
                )

            payment_type = PaymentType.INITIAL if order.total_paid == ZERO else PaymentType.INSTALLMENT
            tx.fetch_one(_INSERT_PAYMENT_SQL, {
                "order_id": order_id,
                "amount": money_param(amount),
                "payment_method": str(method).strip(),
                "payment_type": payment_type.value,
                "notes": notes or "",
                "created_at": _utc_now_iso(),
            })

            new_paid = to_money(order.total_paid + amount)
            status = payment_status_for(order.totals.total, new_paid)
            updated = tx.fetch_one(_UPDATE_PAID_SQL, {
                "order_id": order_id,
                "total_paid": money_param(new_paid),
                "payment_status": status.value,
                "previous_paid": money_param(order.total_paid),
            })
            if updated is None:
                # Compare-and-set lost to a concurrent payment; roll back
                logger.error(f"Paid amount on order {order_id} changed during payment record")
                raise PersistenceError("payment record")

            payments = _load_payments(tx, order_id)

        logger.info(f"Recorded {amount} {method} payment on order {order_id} ({status.value})")
        return PaymentSummary(
            order_id=order_id,
            total_amount=order.totals.total,
            total_paid=new_paid,
            payment_status=status,
            payments=payments,
        )


# =============================================================================
# HELPERS
# =============================================================================

def _load_payments(tx: Transaction, order_id: int) -> List[Payment]:
    return [Payment.from_row(row) for row in tx.fetch_all(_SELECT_PAYMENTS_SQL, {"order_id": order_id})]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _parse_price(value: Any, field: str) -> Decimal:
    """Parse a non-negative line price from an admin patch."""
    try:
        price = parse_amount(value)
    except ValueError:
        raise ValidationError("Price must be a number", field=field)
    if price < 0:
        raise ValidationError("Price cannot be negative", field=field)
    return price
