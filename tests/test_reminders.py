from datetime import date

import pytest

from conftest import NOW, doc_input
from invoicedesk.models.document import Document
from invoicedesk.services.reminders import days_until_due, documents_needing_reminder, needs_reminder, reminder_urgency


def invoice(due, status="sent", document_type="invoice"):
    return Document(
        document_number="INV-1",
        number_sequence="invoice",
        customer_id="cust_1",
        currency="USD",
        document_type=document_type,
        status=status,
        due_date=due,
    )


# clock: 2024-01-31 09:30 UTC
@pytest.mark.parametrize(
    "due,days,urgency,badge",
    [
        (date(2024, 1, 30), -2, "high", True),
        (date(2024, 1, 31), -1, "high", True),
        (date(2024, 2, 1), 0, "medium", True),
        (date(2024, 2, 3), 2, "medium", True),
        (date(2024, 2, 4), 3, "low", True),
        (date(2024, 2, 5), 4, "low", False),
        (date(2024, 2, 8), 7, "low", False),
        (date(2024, 2, 9), 8, None, False),
    ],
)
def test_urgency_by_due_date(due, days, urgency, badge):
    doc = invoice(due)
    assert days_until_due(doc, NOW) == days
    assert reminder_urgency(doc, NOW) == urgency
    assert needs_reminder(doc, NOW) is badge


@pytest.mark.parametrize("status", ["draft", "paid", "archived"])
def test_only_open_invoices(status):
    doc = invoice(date(2024, 1, 1), status=status)
    assert reminder_urgency(doc, NOW) is None
    assert not needs_reminder(doc, NOW)


def test_no_due_date_or_quote():
    assert reminder_urgency(invoice(None), NOW) is None
    assert reminder_urgency(invoice(date(2024, 1, 1), document_type="quote"), NOW) is None


def test_documents_needing_reminder_sorted(clock):
    docs = [invoice(date(2024, 2, 3)), invoice(date(2024, 1, 20)), invoice(date(2024, 3, 1))]
    due = documents_needing_reminder(docs, clock)
    assert [d.due_date for d in due] == [date(2024, 1, 20), date(2024, 2, 3)]


def test_created_invoices_with_terms(documents):
    doc = documents.create(doc_input(status="issued", payment_terms="custom", custom_net_days=2))
    assert doc.due_date == date(2024, 2, 2)
    assert reminder_urgency(doc, NOW) == "medium"
