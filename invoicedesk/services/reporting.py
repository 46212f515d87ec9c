from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel

from invoicedesk.models.document import Document
from invoicedesk.models.payment import Payment
from invoicedesk.services.reconciliation import reconcile_payments


class CustomerStats(BaseModel):
    total_invoiced: Decimal = Decimal("0")
    total_pending: Decimal = Decimal("0")
    pending_count: int = 0
    total_invoices: int = 0
    total_quotes: int = 0
    last_invoice_date: Optional[datetime] = None


def documents_for_customer(documents: Iterable[Document], customer_id: str) -> List[Document]:
    return [d for d in documents if d.customer_id == customer_id]


def customer_stats(documents: Iterable[Document], payments: Iterable[Payment] = ()) -> CustomerStats:
    """
    Totals over one customer's documents.

    Invoiced sums non-archived invoices; pending sums what is still owed on
    issued / sent invoices (balance after payments, not the full total).
    """
    documents = list(documents)
    payments = list(payments)
    invoices = [d for d in documents if d.document_type == "invoice"]
    pending = [d for d in invoices if d.status in ("issued", "sent")]

    last: Optional[Document] = max(invoices, key=lambda d: d.created_at, default=None)
    return CustomerStats(
        total_invoiced=sum((d.total for d in invoices if d.status != "archived"), Decimal("0")),
        total_pending=sum((reconcile_payments(d.id, d.total, payments).balance for d in pending), Decimal("0")),
        pending_count=len(pending),
        total_invoices=len(invoices),
        total_quotes=sum(1 for d in documents if d.document_type == "quote"),
        last_invoice_date=last.created_at if last else None,
    )
