from decimal import Decimal

import pytest

from conftest import doc_input
from invoicedesk.errors import InvalidDocumentTypeError, NotFoundError, ValidationError
from invoicedesk.services.document_service import DocumentService
from invoicedesk.services.payment_service import PaymentService
from invoicedesk.storage.stores import JsonDocumentStore, JsonPaymentStore


@pytest.fixture
def invoice(documents):
    doc = documents.create(doc_input(status="issued"))  # total 100.00
    return documents.transition_status(doc.id, "sent")


def test_partial_payment_keeps_status(payments, documents, invoice):
    payments.record_payment(invoice.id, 40, "cash")
    info = payments.payment_info(invoice.id)
    assert (info.total_paid, info.balance, info.status) == (40, 60, "partial")
    assert documents.get(invoice.id).status == "sent"


def test_full_payment_marks_paid(payments, documents, invoice):
    payments.record_payment(invoice.id, 40, "cash")
    payments.record_payment(invoice.id, "60.00", "transfer", reference="TRX-1")

    doc = documents.get(invoice.id)
    assert doc.status == "paid"
    assert doc.paid_at is not None
    event = doc.events[-1]
    assert event.type == "MARKED_PAID"
    assert Decimal(event.metadata["total_paid"]) == Decimal("100")
    assert event.metadata["payments_count"] == "2"


def test_payment_carries_invoice_context(payments, invoice):
    payment = payments.record_payment(invoice.id, 10, "card")
    assert payment.invoice_number == invoice.document_number
    assert payment.customer_id == "cust_1"
    assert payment.tenant_id == "acme"
    assert payments.list_by_customer("cust_1") == [payment]


def test_deleting_a_payment_reopens_the_invoice(payments, documents, invoice):
    payments.record_payment(invoice.id, 40, "cash")
    second = payments.record_payment(invoice.id, 60, "cash")
    paid = documents.get(invoice.id)
    assert paid.status == "paid"

    payments.delete_payment(second.id)
    doc = documents.get(invoice.id)
    assert doc.status == "sent"
    assert doc.paid_at is None
    assert len(doc.events) == len(paid.events)
    assert payments.payment_info(invoice.id).status == "partial"


def test_delete_unknown_payment(payments):
    with pytest.raises(NotFoundError):
        payments.delete_payment("pay_missing")


@pytest.mark.parametrize("amount", [0, -5, "100.01", "abc", "NaN", "33.333"])
def test_rejected_amounts(payments, invoice, amount):
    with pytest.raises(ValidationError):
        payments.record_payment(invoice.id, amount, "cash")
    assert payments.list_by_invoice(invoice.id) == []


def test_overpayment_when_allowed(payments, documents, invoice):
    payments.record_payment(invoice.id, 150, "cash", allow_overpayment=True)
    assert payments.payment_info(invoice.id).status == "overpaid"
    assert documents.get(invoice.id).status == "paid"


def test_overpayment_still_validates_amount(payments, invoice):
    with pytest.raises(ValidationError):
        payments.record_payment(invoice.id, "abc", "cash", allow_overpayment=True)
    with pytest.raises(ValidationError):
        payments.record_payment(invoice.id, "150.005", "cash", allow_overpayment=True)


def test_cent_payments_settle_exactly(payments, documents, invoice):
    for amount in ("33.33", "33.33", "33.34"):
        payments.record_payment(invoice.id, amount, "cash")
    assert payments.payment_info(invoice.id).balance == 0
    assert documents.get(invoice.id).status == "paid"


def test_payments_only_against_invoices(payments, documents):
    quote = documents.create(doc_input(document_type="quote"))
    with pytest.raises(InvalidDocumentTypeError):
        payments.record_payment(quote.id, 10, "cash")


def test_payment_on_unknown_invoice(payments):
    with pytest.raises(NotFoundError):
        payments.record_payment("inv_missing", 10, "cash")


def test_draft_invoice_stays_draft_when_paid(payments, documents):
    draft = documents.create(doc_input())
    payments.record_payment(draft.id, 100, "cash")
    assert documents.get(draft.id).status == "draft"
    assert payments.payment_info(draft.id).status == "paid"


def test_summary(payments, documents, invoice):
    other = documents.create(doc_input(status="issued"))
    payments.record_payment(invoice.id, 40, "cash")
    payments.record_payment(invoice.id, 10, "card")
    payments.record_payment(other.id, 25, "cash")

    summary = payments.summary(recent=2)
    assert summary.total_payments == 3
    assert summary.total_amount == Decimal("75")
    assert summary.by_method["cash"].count == 2
    assert summary.by_method["cash"].amount == Decimal("65")
    assert summary.by_method["card"].count == 1
    assert len(summary.recent_payments) == 2


def test_payments_are_scoped_to_tenant(tmp_path, tenants, clock, payments, invoice):
    payment = payments.record_payment(invoice.id, 10, "cash")
    tenants.complete_onboarding("other", tax_enabled=False)
    other = PaymentService(
        JsonPaymentStore(data_dir=tmp_path),
        DocumentService(JsonDocumentStore(data_dir=tmp_path), tenants, "other", clock=clock),
    )
    assert other.list_payments() == []
    assert other.list_by_customer("cust_1") == []
    assert other.summary().total_payments == 0
    with pytest.raises(NotFoundError):
        other.record_payment(invoice.id, 10, "cash")
    with pytest.raises(NotFoundError):
        other.delete_payment(payment.id)
    assert payments.list_by_invoice(invoice.id) == [payment]
