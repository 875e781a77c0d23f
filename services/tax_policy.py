"""
Sales tax policy.

Only physical goods are taxed. Custom services are never taxable, and
catalog lines flagged as non-taxable (bundled installation, support plans)
are skipped too. The rate comes from configuration (TAX_RATE).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from core.settings import LedgerSettings
from models.money import CENT, money_sum
from models.order import ProductLine


@dataclass(frozen=True)
class TaxPolicy:
    """Flat-rate tax on the taxable product subtotal."""

    rate: Decimal

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> "TaxPolicy":
        return cls(rate=settings.tax_rate)

    def taxable_subtotal(self, lines: Iterable[ProductLine]) -> Decimal:
        return money_sum(line.extension for line in lines if line.taxable)

    def tax_for(self, lines: Iterable[ProductLine]) -> Decimal:
        """Tax due on a set of product lines, rounded half-up to the cent."""
        return (self.taxable_subtotal(lines) * self.rate).quantize(CENT, rounding=ROUND_HALF_UP)
