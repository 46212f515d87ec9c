"""
Document totals: line totals with per-line discount, subtotal, tax, total.

Pure functions over Decimal amounts. Inputs are validated upstream by the
pydantic payload models (quantity > 0, unit price >= 0, discount 0-100), so
nothing here raises on business grounds.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, NamedTuple

from invoicedesk.models.common import round_money
from invoicedesk.models.document import LineItemInput

HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


class DocumentTotals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _gross(item: LineItemInput) -> Decimal:
    return Decimal(item.quantity) * Decimal(item.unit_price)


def line_discount(item: LineItemInput) -> Decimal:
    return _gross(item) * Decimal(item.discount or 0) / HUNDRED


def line_total(item: LineItemInput) -> Decimal:
    """qty * unit_price minus the line discount, rounded half-up to the cent."""
    return round_money(_gross(item) - line_discount(item))


def total_discount(items: Iterable[LineItemInput]) -> Decimal:
    return round_money(sum((line_discount(it) for it in items), Decimal("0")))


def subtotal(items: Iterable[LineItemInput]) -> Decimal:
    return round_money(sum((line_total(it) for it in items), Decimal("0")))


def tax(amount: Decimal, enabled: bool, rate_percent: Decimal) -> Decimal:
    if not enabled or rate_percent is None or Decimal(rate_percent) <= 0:
        return ZERO
    return round_money(Decimal(amount) * Decimal(rate_percent) / HUNDRED)


def document_totals(items: Iterable[LineItemInput], tax_enabled: bool, tax_rate_percent) -> DocumentTotals:
    items = list(items)
    sub = subtotal(items)
    tx = tax(sub, tax_enabled, Decimal(str(tax_rate_percent or 0)))
    return DocumentTotals(subtotal=sub, tax=tx, total=round_money(sub + tx))
