"""
Document numbering.

Each tenant owns three independent counters (draft, quote, invoice), each with
its own prefix, stored in the tenant settings. Allocation is read-then-increment,
so `reserve` holds a lock per {tenant, sequence kind} from the read until the
increment; the counter only moves when the caller's block completes.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, NamedTuple, Tuple

from invoicedesk.models.document import SequenceKind
from invoicedesk.services.tenant_service import TenantSettingsService

logger = logging.getLogger(__name__)

# sequence kind -> (prefix field, counter field) on TenantSettings
SEQUENCE_FIELDS: Dict[str, Tuple[str, str]] = {
    "draft": ("draft_prefix", "next_draft_number"),
    "quote": ("quote_prefix", "next_quote_number"),
    "invoice": ("invoice_prefix", "next_invoice_number"),
}

_locks: Dict[Tuple[str, str, str], threading.Lock] = {}
_locks_guard = threading.Lock()


def format_number(prefix: str, number: int) -> str:
    return f"{prefix}{number}"


class Reservation(NamedTuple):
    kind: str
    prefix: str
    number: int

    @property
    def formatted(self) -> str:
        return format_number(self.prefix, self.number)


class NumberingService:
    def __init__(self, tenants: TenantSettingsService):
        self.tenants = tenants

    def _lock_for(self, tenant_id: str, kind: str) -> threading.Lock:
        key = (str(self.tenants.repo.filepath), tenant_id, kind)
        with _locks_guard:
            return _locks.setdefault(key, threading.Lock())

    def peek_next(self, tenant_id: str, kind: SequenceKind) -> Tuple[str, int]:
        prefix_field, counter_field = SEQUENCE_FIELDS[kind]
        settings = self.tenants.get_settings(tenant_id)
        return getattr(settings, prefix_field), getattr(settings, counter_field)

    def commit(self, tenant_id: str, kind: SequenceKind) -> int:
        """Increment the counter; returns the new next number."""
        _, counter_field = SEQUENCE_FIELDS[kind]
        repo = self.tenants.repo
        with repo.lock:
            current = getattr(self.tenants.get_settings(tenant_id), counter_field)
            repo.update({"tenant_id": tenant_id, counter_field: current + 1})
        return current + 1

    @contextmanager
    def reserve(self, tenant_id: str, kind: SequenceKind) -> Iterator[Reservation]:
        with self._lock_for(tenant_id, kind):
            prefix, number = self.peek_next(tenant_id, kind)
            reservation = Reservation(kind, prefix, number)
            yield reservation
            self.commit(tenant_id, kind)
            logger.debug("Allocated %s number %s for tenant %s", kind, reservation.formatted, tenant_id)
