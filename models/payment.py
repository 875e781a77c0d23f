"""
Payment models.

Payments are recorded by an admin after money arrives through an outside
channel (cash, check, Zelle, PayPal). There is no gateway integration;
the ledger only tracks what was paid and what remains.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from models.email_log import parse_timestamp
from models.money import money_json, to_money


class PaymentStatus(Enum):
    """How much of an order's total has been paid."""

    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class PaymentType(Enum):
    INITIAL = "initial"
    INSTALLMENT = "installment"


@dataclass(frozen=True)
class Payment:
    """One recorded payment against an order."""

    order_id: int
    amount: Decimal
    payment_method: str
    payment_type: PaymentType
    notes: str = ""
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": money_json(self.amount),
            "payment_method": self.payment_method,
            "payment_type": self.payment_type.value,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Payment":
        return cls(
            id=row.get("id"),
            order_id=row["order_id"],
            amount=to_money(row["amount"]),
            payment_method=row["payment_method"],
            payment_type=PaymentType(row["payment_type"]),
            notes=row.get("notes") or "",
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass(frozen=True)
class PaymentSummary:
    """Payment history and balance for an order."""

    order_id: int
    total_amount: Decimal
    total_paid: Decimal
    payment_status: PaymentStatus
    payments: List[Payment] = field(default_factory=list)

    @property
    def remaining_balance(self) -> Decimal:
        return to_money(self.total_amount - self.total_paid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "total_amount": money_json(self.total_amount),
            "total_paid": money_json(self.total_paid),
            "remaining_balance": money_json(self.remaining_balance),
            "payment_status": self.payment_status.value,
            "payment_history": [p.to_dict() for p in self.payments],
        }
