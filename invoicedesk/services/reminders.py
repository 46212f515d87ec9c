"""
Payment reminders for open invoices.

Only issued / sent invoices with a due date are considered. Days until due are
counted from ``now`` to midnight UTC of the due date, rounded down, so an
invoice due today is already overdue once the day has started.

    overdue            -> high
    due in 0-2 days    -> medium
    due in 3-7 days    -> low
"""
from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Callable, Iterable, List, Literal, Optional

from invoicedesk.models.common import utcnow
from invoicedesk.models.document import Document

ReminderUrgency = Literal["low", "medium", "high"]

BADGE_DAYS = 3


def days_until_due(doc: Document, now: datetime) -> Optional[int]:
    if doc.document_type != "invoice" or doc.status not in ("issued", "sent") or doc.due_date is None:
        return None
    due = datetime.combine(doc.due_date, time.min, tzinfo=timezone.utc)
    return (due - now).days  # timedelta.days is floored


def needs_reminder(doc: Document, now: Optional[datetime] = None) -> bool:
    days = days_until_due(doc, now or utcnow())
    return days is not None and days <= BADGE_DAYS


def reminder_urgency(doc: Document, now: Optional[datetime] = None) -> Optional[ReminderUrgency]:
    days = days_until_due(doc, now or utcnow())
    if days is None:
        return None
    if days < 0:
        return "high"
    if days <= 2:
        return "medium"
    if days <= 7:
        return "low"
    return None


def documents_needing_reminder(documents: Iterable[Document],
                               clock: Callable[[], datetime] = utcnow) -> List[Document]:
    """Invoices to remind about, soonest due first."""
    now = clock()
    out = [d for d in documents if needs_reminder(d, now)]
    return sorted(out, key=lambda d: d.due_date)
