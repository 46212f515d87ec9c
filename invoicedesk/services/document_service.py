"""
Invoice / quote lifecycle.

STATE MACHINE:

    draft --issue--> issued --send--> sent --full payment--> paid
      |                                 ^                      |
      +-------------send----------------+<--balance reopens----+

    any non-archived --archive--> archived (terminal)

Every create / update / status change appends to the document's event log;
events are never edited, reordered or removed. Numbers come from the tenant
counters (see numbering.py): quotes use the quote sequence, draft invoices the
draft sequence, issued invoices the official invoice sequence.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from invoicedesk.errors import (
    InvalidDocumentTypeError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from invoicedesk.models.common import gen_id, utcnow
from invoicedesk.models.document import (
    NET_DAYS,
    Document,
    DocumentInput,
    DocumentStatus,
    DocumentType,
    DocumentUpdate,
    LineItem,
    PaymentTerms,
    SentInfo,
    SequenceKind,
)
from invoicedesk.models.payment import PaymentInfo
from invoicedesk.services import calc
from invoicedesk.services.numbering import NumberingService
from invoicedesk.services.recurring import schedule
from invoicedesk.services.tenant_service import TenantSettingsService
from invoicedesk.storage.stores import DocumentStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

NON_TERMINAL: Set[str] = {"draft", "issued", "sent", "paid"}

ALLOWED_TRANSITIONS: Set[Tuple[str, str]] = {
    ("draft", "issued"),
    ("draft", "sent"),
    ("issued", "sent"),
    ("issued", "paid"),
    ("sent", "paid"),
    ("paid", "sent"),  # a deleted payment reopened the balance
} | {(s, "archived") for s in NON_TERMINAL}


def can_transition(from_status: str, to_status: str, document_type: DocumentType = "invoice") -> bool:
    if to_status == "paid" and document_type != "invoice":
        return False  # quotes are never paid
    return (from_status, to_status) in ALLOWED_TRANSITIONS


def sequence_for(document_type: DocumentType, status: str) -> SequenceKind:
    if document_type == "quote":
        return "quote"
    if document_type == "invoice":
        return "draft" if status == "draft" else "invoice"
    raise ValueError(f"Unknown document type '{document_type}'")


def due_date_for(created_at: datetime, terms: PaymentTerms, custom_net_days: Optional[int] = None) -> Optional[date]:
    """None for due_on_receipt, otherwise created date + net days."""
    days = custom_net_days if terms == "custom" else NET_DAYS[terms]
    if days is None:
        return None
    return created_at.date() + timedelta(days=days)


def _parse(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except SchemaError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc


class DocumentService:
    def __init__(
        self,
        store: DocumentStore,
        tenants: TenantSettingsService,
        tenant_id: str,
        *,
        numbering: Optional[NumberingService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.tenants = tenants
        self.tenant_id = tenant_id
        self.numbering = numbering or NumberingService(tenants)
        self.clock = clock

    # ----------- lookups -----------
    def get(self, document_id: str) -> Document:
        doc = self.store.find_by_id(document_id)
        # other tenants' documents are indistinguishable from missing ones
        if doc is None or doc.tenant_id != self.tenant_id:
            raise NotFoundError(f"Document {document_id} not found")
        return doc

    def list_documents(
        self,
        document_type: Optional[DocumentType] = None,
        customer_id: Optional[str] = None,
        status: Optional[DocumentStatus] = None,
    ) -> List[Document]:
        out = []
        for doc in self.store.list_all():
            if doc.tenant_id != self.tenant_id:
                continue
            if document_type and doc.document_type != document_type:
                continue
            if customer_id and doc.customer_id != customer_id:
                continue
            if status and doc.status != status:
                continue
            out.append(doc)
        return out

    # ----------- create / update -----------
    def create(self, data: Union[DocumentInput, Mapping[str, Any]]) -> Document:
        data = _parse(DocumentInput, data)
        tax = self.tenants.get_tax_config(self.tenant_id)
        currency = (data.currency or self.tenants.get_currency(self.tenant_id)).upper()

        items = [LineItem(**it.model_dump()) for it in data.line_items]
        totals = calc.document_totals(items, tax.enabled, tax.rate_percent)
        kind = sequence_for(data.document_type, data.status)
        now = self.clock()

        with self.numbering.reserve(self.tenant_id, kind) as reservation:
            doc = Document(
                tenant_id=self.tenant_id,
                document_type=data.document_type,
                document_number=reservation.formatted,
                number_sequence=kind,
                customer_id=data.customer_id,
                currency=currency,
                line_items=items,
                subtotal=totals.subtotal,
                tax_amount=totals.tax,
                total=totals.total,
                status=data.status,
                payment_terms=data.payment_terms,
                custom_net_days=data.custom_net_days,
                due_date=due_date_for(now, data.payment_terms, data.custom_net_days),
                recurring_config=schedule(data.recurring_config) if data.recurring_config else None,
                scheduled_send=data.scheduled_send,
                notes=data.notes,
                created_at=now,
                updated_at=now,
            )
            if data.status == "draft":
                doc.append_event("CREATED_DRAFT", at=now)
            else:
                doc.append_event("CREATED", at=now)
                doc.append_event("MARKED_ISSUED", at=now)
            self.store.save(doc)

        logger.info("Created %s %s (%s, total=%s %s)", doc.document_type, doc.document_number,
                    doc.status, doc.total, doc.currency)
        return doc

    def update(self, document_id: str, data: Union[DocumentUpdate, Mapping[str, Any]]) -> Document:
        data = _parse(DocumentUpdate, data)
        doc = self.get(document_id)
        if doc.status == "archived":
            raise InvalidTransitionError(doc.id, doc.status, doc.status,
                                         f"Document {doc.id} is archived and can no longer be edited")
        tax = self.tenants.get_tax_config(self.tenant_id)

        # keep line identities by position, new ids for added lines
        items: List[LineItem] = []
        for idx, it in enumerate(data.line_items):
            item_id = doc.line_items[idx].id if idx < len(doc.line_items) else gen_id("item_")
            items.append(LineItem(id=item_id, **it.model_dump()))
        totals = calc.document_totals(items, tax.enabled, tax.rate_percent)

        doc.customer_id = data.customer_id
        doc.line_items = items
        doc.subtotal, doc.tax_amount, doc.total = totals
        doc.payment_terms = data.payment_terms
        doc.custom_net_days = data.custom_net_days
        doc.due_date = due_date_for(doc.created_at, data.payment_terms, data.custom_net_days)
        doc.recurring_config = schedule(data.recurring_config) if data.recurring_config else None
        doc.scheduled_send = data.scheduled_send
        doc.notes = data.notes
        doc.append_event("UPDATED", at=self.clock())
        return self.store.save(doc)

    def record_pdf_export(self, document_id: str) -> Document:
        doc = self.get(document_id)
        doc.append_event("EXPORTED_PDF", at=self.clock())
        return self.store.save(doc)

    # ----------- status -----------
    def transition_status(
        self,
        document_id: str,
        new_status: DocumentStatus,
        *,
        to_email: Optional[str] = None,
        message: Optional[str] = None,
        method: str = "manual",
        total_paid: Optional[Any] = None,
        payments_count: Optional[int] = None,
    ) -> Document:
        doc = self.get(document_id)
        current = doc.status
        if not can_transition(current, new_status, doc.document_type):
            raise InvalidTransitionError(doc.id, current, new_status)

        now = self.clock()
        if new_status == "issued":
            self._issue(doc, now)
        elif new_status == "sent":
            self._send(doc, now, to_email=to_email, message=message, method=method)
        elif new_status == "paid":
            self._mark_paid(doc, now, total_paid=total_paid, payments_count=payments_count)
        elif new_status == "archived":
            doc.status = "archived"
            doc.archived_at = now
            doc.append_event("ARCHIVED", at=now)
            self.store.save(doc)
        else:
            raise InvalidTransitionError(doc.id, current, new_status)

        logger.info("Document %s: %s -> %s", doc.document_number, current, new_status)
        return doc

    def _issue(self, doc: Document, now: datetime) -> None:
        if doc.document_type == "invoice" and doc.number_sequence == "draft":
            # the draft number is dropped; official numbers are drawn only at issue time
            with self.numbering.reserve(self.tenant_id, "invoice") as reservation:
                previous = doc.document_number
                doc.document_number = reservation.formatted
                doc.number_sequence = "invoice"
                doc.status = "issued"
                doc.append_event("MARKED_ISSUED", {"previous_number": previous}, at=now)
                self.store.save(doc)
            return
        doc.status = "issued"
        doc.append_event("MARKED_ISSUED", at=now)
        self.store.save(doc)

    def _send(self, doc: Document, now: datetime, *, to_email: Optional[str], message: Optional[str],
              method: str) -> None:
        if doc.status == "paid":
            # reopened by a deleted payment: status only, no event
            doc.status = "sent"
            doc.paid_at = None
            doc.updated_at = now
            self.store.save(doc)
            return

        meta: Dict[str, str] = {}
        if to_email:
            meta["to_email"] = to_email
        if message:
            meta["message"] = message
        doc.status = "sent"
        doc.sent = SentInfo(to_email=to_email, message=message, sent_at=now, method=method)
        doc.append_event("QUOTE_SENT" if doc.document_type == "quote" else "SENT", meta, at=now)
        self.store.save(doc)

    def _mark_paid(self, doc: Document, now: datetime, *, total_paid: Optional[Any],
                   payments_count: Optional[int]) -> None:
        doc.status = "paid"
        doc.paid_at = now
        doc.append_event("MARKED_PAID", {
            "total_paid": str(total_paid if total_paid is not None else doc.total),
            "payments_count": str(payments_count or 0),
        }, at=now)
        self.store.save(doc)

    def apply_reconciliation(self, document_id: str, info: PaymentInfo) -> Document:
        """Move an invoice to / out of 'paid' when its ledger crosses the total."""
        doc = self.get(document_id)
        if doc.document_type != "invoice":
            return doc
        if info.status in ("paid", "overpaid") and doc.status in ("issued", "sent"):
            return self.transition_status(doc.id, "paid", total_paid=info.total_paid,
                                          payments_count=len(info.payments))
        if info.status in ("unpaid", "partial") and doc.status == "paid":
            return self.transition_status(doc.id, "sent")
        return doc

    # ----------- quotes -----------
    def convert_quote_to_invoice(self, quote_id: str) -> Document:
        quote = self.get(quote_id)
        if quote.document_type != "quote":
            raise InvalidDocumentTypeError(f"Document {quote_id} is not a quote")

        now = self.clock()
        with self.numbering.reserve(self.tenant_id, "invoice") as reservation:
            # totals are copied as quoted, not recomputed against today's tax rate
            invoice = Document(
                tenant_id=self.tenant_id,
                document_type="invoice",
                document_number=reservation.formatted,
                number_sequence="invoice",
                customer_id=quote.customer_id,
                currency=quote.currency,
                line_items=[it.model_copy(update={"id": gen_id("item_")}) for it in quote.line_items],
                subtotal=quote.subtotal,
                tax_amount=quote.tax_amount,
                total=quote.total,
                status="draft",
                payment_terms=quote.payment_terms,
                custom_net_days=quote.custom_net_days,
                due_date=due_date_for(now, quote.payment_terms, quote.custom_net_days),
                origin_quote_id=quote.id,
                notes=quote.notes,
                created_at=now,
                updated_at=now,
            )
            invoice.append_event("CREATED_FROM_QUOTE", {
                "origin_quote_id": quote.id,
                "origin_quote_number": quote.document_number,
            }, at=now)
            quote.append_event("CONVERTED_TO_INVOICE", {
                "new_invoice_id": invoice.id,
                "new_invoice_number": invoice.document_number,
            }, at=now)
            self.store.save(invoice)
            try:
                self.store.save(quote)
            except Exception:
                # the number is not committed: no invoice may keep it
                logger.error("Conversion of quote %s failed, removing invoice %s", quote.id, invoice.id)
                self.store.delete(invoice.id)
                raise

        logger.info("Converted quote %s into invoice %s", quote.document_number, invoice.document_number)
        return invoice
