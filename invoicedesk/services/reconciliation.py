from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, List

from invoicedesk.errors import ValidationError
from invoicedesk.models.common import round_money
from invoicedesk.models.payment import Payment, PaymentInfo, PaymentStatus


def _for_invoice(invoice_id: str, payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in payments if p.invoice_id == invoice_id]


def total_paid(invoice_id: str, payments: Iterable[Payment]) -> Decimal:
    return sum((p.amount for p in _for_invoice(invoice_id, payments)), Decimal("0"))


def payment_status(invoice_total: Decimal, paid: Decimal) -> PaymentStatus:
    if paid == 0:
        return "unpaid"
    if paid < invoice_total:
        return "partial"
    if paid == invoice_total:
        return "paid"
    return "overpaid"


def reconcile_payments(invoice_id: str, invoice_total, payments: Iterable[Payment]) -> PaymentInfo:
    """
    Aggregate the ledger for one invoice into paid / balance / status.

    Payments for other invoices are ignored. Callers re-run this whenever the
    ledger changes and hand the result to DocumentService.apply_reconciliation.
    """
    invoice_total = Decimal(str(invoice_total))
    matching = _for_invoice(invoice_id, payments)
    paid = sum((p.amount for p in matching), Decimal("0"))
    return PaymentInfo(
        invoice_id=invoice_id,
        invoice_total=invoice_total,
        total_paid=paid,
        balance=invoice_total - paid,
        status=payment_status(invoice_total, paid),
        payments=matching,
    )


def parse_amount(value) -> Decimal:
    """Payment amount as a positive Decimal with at most two decimal places."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(f"Payment amount '{value}' is not a number") from exc
    if not amount.is_finite():
        raise ValidationError(f"Payment amount '{value}' is not a number")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than 0")
    if amount != round_money(amount):
        raise ValidationError(f"Payment amount {amount} has more than two decimal places")
    return amount


def validate_payment_amount(amount, invoice_total, paid) -> Decimal:
    amount = parse_amount(amount)
    balance = Decimal(str(invoice_total)) - Decimal(str(paid))
    if amount > balance:
        raise ValidationError(f"Payment amount exceeds the outstanding balance of {balance:.2f}")
    return amount
