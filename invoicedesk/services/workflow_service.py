from __future__ import annotations
import os
from datetime import datetime
from typing import Callable, List, Optional

from invoicedesk.models.common import utcnow
from invoicedesk.models.document import Document
from invoicedesk.models.payment import Payment
from invoicedesk.services.document_service import DocumentService
from invoicedesk.services.payment_service import PaymentService
from invoicedesk.services.reminders import documents_needing_reminder
from invoicedesk.services.tenant_service import TenantSettingsService
from invoicedesk.storage.stores import JsonDocumentStore, JsonPaymentStore


class WorkflowService:
    """Wires the stores and services for one tenant and runs the multi-step flows."""

    def __init__(self, tenant_id: str, data_dir: Optional[os.PathLike | str] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self.tenants = TenantSettingsService(data_dir=data_dir, clock=clock)
        self.documents = DocumentService(JsonDocumentStore(data_dir=data_dir), self.tenants, tenant_id, clock=clock)
        self.payments = PaymentService(JsonPaymentStore(data_dir=data_dir), self.documents)

    # quote accepted by the customer: invoice it, optionally issue right away
    def accept_quote(self, quote_id: str, *, issue: bool = True) -> Document:
        invoice = self.documents.convert_quote_to_invoice(quote_id)
        if issue:
            invoice = self.documents.transition_status(invoice.id, "issued")
        return invoice

    # send an invoice (issuing it first when still a draft)
    def send_invoice(self, invoice_id: str, to_email: Optional[str] = None, message: Optional[str] = None) -> Document:
        doc = self.documents.get(invoice_id)
        if doc.document_type == "invoice" and doc.status == "draft":
            self.documents.transition_status(doc.id, "issued")
        return self.documents.transition_status(doc.id, "sent", to_email=to_email, message=message)

    # payment received: record it, lifecycle follows the ledger
    def collect_payment(self, invoice_id: str, amount, method: str, **kwargs) -> tuple[Payment, Document]:
        payment = self.payments.record_payment(invoice_id, amount, method, **kwargs)
        return payment, self.documents.get(invoice_id)

    # open invoices due within a few days or overdue
    def due_reminders(self) -> List[Document]:
        return documents_needing_reminder(self.documents.list_documents(document_type="invoice"), self.clock)
