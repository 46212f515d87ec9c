from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import ValidationError as SchemaError

from invoicedesk.errors import InvalidDocumentTypeError, NotFoundError, ValidationError
from invoicedesk.models.payment import MethodTotals, Payment, PaymentInfo, PaymentSummary
from invoicedesk.services.document_service import DocumentService
from invoicedesk.services.reconciliation import parse_amount, reconcile_payments, validate_payment_amount
from invoicedesk.storage.stores import PaymentStore

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Payment ledger. Every change re-runs reconciliation for the invoice and
    hands the result to the lifecycle, which moves the invoice to / out of 'paid'.
    """

    def __init__(self, store: PaymentStore, documents: DocumentService):
        self.store = store
        self.documents = documents

    @property
    def tenant_id(self) -> str:
        return self.documents.tenant_id

    def _own(self, payments: List[Payment]) -> List[Payment]:
        return [p for p in payments if p.tenant_id == self.tenant_id]

    # ----------- queries -----------
    def list_payments(self) -> List[Payment]:
        return self._own(self.store.list_all())

    def list_by_invoice(self, invoice_id: str) -> List[Payment]:
        return self._own(self.store.list_by_invoice(invoice_id))

    def list_by_customer(self, customer_id: str) -> List[Payment]:
        return self._own(self.store.list_by_customer(customer_id))

    def payment_info(self, invoice_id: str) -> PaymentInfo:
        doc = self.documents.get(invoice_id)
        return reconcile_payments(doc.id, doc.total, self.list_by_invoice(doc.id))

    # ----------- ledger changes -----------
    def record_payment(
        self,
        invoice_id: str,
        amount,
        method: str,
        *,
        paid_at: Optional[datetime] = None,
        reference: Optional[str] = None,
        bank_info: Optional[str] = None,
        notes: Optional[str] = None,
        allow_overpayment: bool = False,
    ) -> Payment:
        doc = self.documents.get(invoice_id)
        if doc.document_type != "invoice":
            raise InvalidDocumentTypeError(f"Payments can only be recorded against invoices, not {doc.document_type}s")

        info = reconcile_payments(doc.id, doc.total, self.list_by_invoice(doc.id))
        if allow_overpayment:
            amount = parse_amount(amount)
        else:
            amount = validate_payment_amount(amount, doc.total, info.total_paid)

        fields = dict(
            invoice_id=doc.id,
            invoice_number=doc.document_number,
            customer_id=doc.customer_id,
            amount=amount,
            method=method,
            reference=reference,
            bank_info=bank_info,
            notes=notes,
            tenant_id=self.tenant_id,
        )
        if paid_at is not None:
            fields["paid_at"] = paid_at
        try:
            payment = Payment(**fields)
        except SchemaError as exc:
            raise ValidationError(f"Invalid payment: {exc}") from exc

        self.store.save(payment)
        logger.info("Recorded payment %s of %s on %s", payment.id, payment.amount, doc.document_number)
        self._sync(doc.id)
        return payment

    def delete_payment(self, payment_id: str) -> None:
        payment = self.store.find_by_id(payment_id)
        if payment is None or payment.tenant_id != self.tenant_id:
            raise NotFoundError(f"Payment {payment_id} not found")
        self.store.delete(payment_id)
        logger.info("Deleted payment %s on invoice %s", payment_id, payment.invoice_id)
        self._sync(payment.invoice_id)

    def _sync(self, invoice_id: str) -> PaymentInfo:
        info = self.payment_info(invoice_id)
        self.documents.apply_reconciliation(invoice_id, info)
        return info

    # ----------- reporting -----------
    def summary(self, recent: int = 10) -> PaymentSummary:
        payments = self.list_payments()
        by_method: Dict[str, MethodTotals] = {}
        for p in payments:
            totals = by_method.setdefault(p.method, MethodTotals())
            totals.count += 1
            totals.amount += p.amount
        return PaymentSummary(
            total_payments=len(payments),
            total_amount=sum((p.amount for p in payments), Decimal("0")),
            by_method=by_method,
            recent_payments=sorted(payments, key=lambda p: p.created_at, reverse=True)[:recent],
        )
