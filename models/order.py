"""
Order data models.

These models represent a customer order as the admin back office sees it:
product lines, custom-service lines and the financial breakdown derived
from them.

Money:
    Every amount is a two-digit Decimal (see models.money). Rows coming
    out of the database are converted with to_money() on the way in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from models.money import ZERO, money_json, to_money
from models.service_request import ServiceAddress


class OrderStatus(Enum):
    """
    Status of an order.

    Lifecycle:
        PENDING -> CONFIRMED -> (DELAYED ->) COMPLETED
        any non-terminal status -> CANCELLED

    COMPLETED and CANCELLED are terminal: the order and its totals are
    frozen once it reaches either.
    """

    PENDING = "pending"
    """Checkout finished, awaiting admin review."""

    CONFIRMED = "confirmed"
    """Accepted by the shop."""

    DELAYED = "delayed"
    """Accepted but held up (stock, scheduling)."""

    COMPLETED = "completed"
    """Delivered / service performed."""

    CANCELLED = "cancelled"
    """Abandoned by the customer or the shop."""

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def values(cls) -> List[str]:
        return [status.value for status in cls]


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


@dataclass(frozen=True)
class ProductLine:
    """A catalog product on an order."""

    name: str
    unit_price: Decimal
    quantity: int = 1
    unit_cost: Decimal = ZERO
    """What the shop paid per unit (cost basis)."""

    taxable: bool = True
    """Physical goods are taxable; bundled services are not."""

    description: str = ""
    product_id: Optional[int] = None
    id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_money(self.unit_price))
        object.__setattr__(self, "unit_cost", to_money(self.unit_cost))
        if self.quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {self.quantity}")
        if self.unit_price < 0 or self.unit_cost < 0:
            raise ValueError("Prices and costs cannot be negative")

    @property
    def extension(self) -> Decimal:
        """unit_price x quantity."""
        return to_money(self.unit_price * self.quantity)

    @property
    def cost_basis(self) -> Decimal:
        return to_money(self.unit_cost * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "price_at_time": money_json(self.unit_price),
            "cost_at_time": money_json(self.unit_cost),
            "taxable": self.taxable,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductLine":
        return cls(
            id=row.get("id"),
            product_id=row.get("product_id"),
            name=row.get("name", ""),
            description=row.get("description") or "",
            quantity=int(row.get("quantity", 1)),
            unit_price=to_money(row["price_at_time"]),
            unit_cost=to_money(row.get("cost_at_time") or 0),
            taxable=bool(row.get("taxable", True)),
        )


@dataclass(frozen=True)
class ServiceLine:
    """A custom service (installation, tuning, consultation) on an order."""

    quoted_price: Decimal
    description: str = ""
    cost_basis: Decimal = ZERO
    notes: str = ""
    preferred_date: str = ""
    preferred_time: str = ""
    address: ServiceAddress = field(default_factory=ServiceAddress)
    id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "quoted_price", to_money(self.quoted_price))
        object.__setattr__(self, "cost_basis", to_money(self.cost_basis))
        if self.quoted_price < 0 or self.cost_basis < 0:
            raise ValueError("Prices and costs cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "quoted_price": money_json(self.quoted_price),
            "cost_basis": money_json(self.cost_basis),
            "notes": self.notes,
            "preferred_date": self.preferred_date,
            "preferred_time": self.preferred_time,
            "address": self.address.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServiceLine":
        """Create from a row or from session storage."""
        address = data.get("address")
        if address is None:
            address = {k: data.get(k, "") for k in ("street", "city", "state", "zip_code")}
        return cls(
            id=data.get("id"),
            description=data.get("description") or "",
            quoted_price=to_money(data["quoted_price"]),
            cost_basis=to_money(data.get("cost_basis") or 0),
            notes=data.get("notes") or "",
            preferred_date=data.get("preferred_date") or "",
            preferred_time=data.get("preferred_time") or "",
            address=ServiceAddress.from_dict(address),
        )


@dataclass(frozen=True)
class OrderTotals:
    """
    Financial breakdown of an order.

    Invariant: product_subtotal + service_subtotal + tax_amount == total.
    """

    product_subtotal: Decimal = ZERO
    service_subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO
    total_profit: Decimal = ZERO

    @property
    def is_balanced(self) -> bool:
        return self.product_subtotal + self.service_subtotal + self.tax_amount == self.total

    def to_dict(self) -> Dict[str, str]:
        return {
            "product_subtotal": money_json(self.product_subtotal),
            "service_subtotal": money_json(self.service_subtotal),
            "tax_amount": money_json(self.tax_amount),
            "total": money_json(self.total),
            "total_profit": money_json(self.total_profit),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OrderTotals":
        return cls(
            product_subtotal=to_money(row.get("product_subtotal") or 0),
            service_subtotal=to_money(row.get("service_subtotal") or 0),
            tax_amount=to_money(row.get("tax_amount") or 0),
            total=to_money(row.get("total_amount") or 0),
            total_profit=to_money(row.get("total_profit") or 0),
        )


@dataclass(frozen=True)
class Customer:
    """Who placed the order."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Order:
    """
    A customer order with its lines and stored totals.

    Immutable: the ledger returns a new Order from recompute() rather than
    editing one in place.
    """

    id: Optional[int] = None
    status: OrderStatus = OrderStatus.PENDING
    customer: Customer = field(default_factory=Customer)
    product_lines: Sequence[ProductLine] = ()
    service_lines: Sequence[ServiceLine] = ()
    totals: OrderTotals = field(default_factory=OrderTotals)
    total_paid: Decimal = ZERO
    payment_status: str = "pending"
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "product_lines", tuple(self.product_lines))
        object.__setattr__(self, "service_lines", tuple(self.service_lines))

    @property
    def remaining_balance(self) -> Decimal:
        return to_money(self.totals.total - self.total_paid)

    @property
    def contains_services(self) -> bool:
        return bool(self.service_lines)

    def with_totals(self, totals: OrderTotals) -> "Order":
        return replace(self, totals=totals)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "status": self.status.value,
            "customer_name": self.customer.full_name,
            "email": self.customer.email,
            "order_items": [line.to_dict() for line in self.product_lines],
            "custom_services": [line.to_dict() for line in self.service_lines],
            "total_paid": money_json(self.total_paid),
            "remaining_balance": money_json(self.remaining_balance),
            "payment_status": self.payment_status,
            "contains_services": self.contains_services,
            "created_at": self.created_at.isoformat() if isinstance(self.created_at, datetime) else self.created_at,
        }
        data.update(self.totals.to_dict())
        return data

    @classmethod
    def from_rows(cls, row: Mapping[str, Any],
                  item_rows: Sequence[Mapping[str, Any]] = (),
                  service_rows: Sequence[Mapping[str, Any]] = ()) -> "Order":
        """Assemble an order from its table rows."""
        return cls(
            id=row["id"],
            status=OrderStatus(row["status"]),
            customer=Customer(
                first_name=row.get("first_name") or "",
                last_name=row.get("last_name") or "",
                email=row.get("email") or "",
            ),
            product_lines=[ProductLine.from_row(r) for r in item_rows],
            service_lines=[ServiceLine.from_dict(r) for r in service_rows],
            totals=OrderTotals.from_row(row),
            total_paid=to_money(row.get("total_paid") or 0),
            payment_status=row.get("payment_status") or "pending",
            created_at=row.get("created_at"),
        )
