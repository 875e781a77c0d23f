"""
Custom service intake models.

A customer builds a custom service request step by step while quoting
(price, scheduling, address). The request is plain working state owned by
one quoting session: it has no identity until it is submitted and turned
into a custom-service line on an order.

Session Storage:
    The intake lives in the Flask session between requests. Use to_dict()
    and from_dict() to move it in and out of the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields, replace
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class ServiceAddress:
    """Where the service is performed. Every part is independently settable."""

    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    def merged(self, update: Mapping[str, Any]) -> "ServiceAddress":
        """
        Return a copy with only the supplied parts changed.

        Unknown keys are ignored; ``zipCode`` is accepted as an alias for
        ``zip_code`` since browser forms send camelCase.
        """
        changes = {}
        for key, value in update.items():
            name = "zip_code" if key == "zipCode" else key
            if name in _ADDRESS_FIELDS and value is not None:
                changes[name] = str(value)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServiceAddress":
        return cls().merged(data or {})


_ADDRESS_FIELDS = frozenset(f.name for f in fields(ServiceAddress))


@dataclass
class CustomServiceRequest:
    """
    A quote in progress.

    Mutated field by field through the setters; reset() puts every field
    back to the blank initial value. No cross-field validation happens
    here: price and date are checked when the request is submitted.
    """

    custom_price: str = ""
    """Quoted price as typed (decimal string, may be empty)."""

    notes: str = ""
    """Free-text notes from the customer."""

    preferred_date: str = ""
    """Requested service date as typed."""

    preferred_time: str = ""
    """Requested time slot as typed."""

    address: ServiceAddress = field(default_factory=ServiceAddress)
    """Service location."""

    def set_custom_price(self, price: str) -> None:
        self.custom_price = price

    def set_notes(self, notes: str) -> None:
        self.notes = notes

    def set_preferred_date(self, date: str) -> None:
        self.preferred_date = date

    def set_preferred_time(self, time: str) -> None:
        self.preferred_time = time

    def set_address(self, update: Mapping[str, Any]) -> None:
        """Shallow-merge address parts; omitted parts keep their value."""
        self.address = self.address.merged(update)

    def reset(self) -> None:
        """Restore the blank initial state."""
        blank = CustomServiceRequest()
        self.custom_price = blank.custom_price
        self.notes = blank.notes
        self.preferred_date = blank.preferred_date
        self.preferred_time = blank.preferred_time
        self.address = blank.address

    @property
    def is_blank(self) -> bool:
        return self == CustomServiceRequest()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for session storage."""
        return {
            "custom_price": self.custom_price,
            "notes": self.notes,
            "preferred_date": self.preferred_date,
            "preferred_time": self.preferred_time,
            "address": self.address.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomServiceRequest":
        """Create from dictionary (e.g., from session)."""
        data = data or {}
        return cls(
            custom_price=data.get("custom_price", ""),
            notes=data.get("notes", ""),
            preferred_date=data.get("preferred_date", ""),
            preferred_time=data.get("preferred_time", ""),
            address=ServiceAddress.from_dict(data.get("address", {})),
        )
