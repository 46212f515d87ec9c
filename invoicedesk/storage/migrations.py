"""
Versioned schema migrations for stored documents.

Records carry a ``schema_version``. Legacy records (no version) come from the
browser-storage era and use camelCase keys. ``migrate_document`` runs every
step above the record's version, in order, and is applied once when the store
loads a record; the store writes the migrated record back.

    0 -> 1  normalize legacy records (type, item ids, events, totals, sent block)
    1 -> 2  snake_case keys, payment terms, number sequence
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from invoicedesk.models.common import gen_id

CURRENT_VERSION = 2

_LEGACY_STATUSES = {"draft", "issued", "sent", "paid", "archived"}
_EVENT_TYPES = {
    "CREATED", "CREATED_DRAFT", "UPDATED", "EXPORTED_PDF",
    "MARKED_ISSUED", "SENT", "QUOTE_SENT", "CONVERTED_TO_INVOICE",
    "CREATED_FROM_QUOTE", "ARCHIVED", "MARKED_PAID",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _v1_normalize_legacy(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc.get("type"):
        doc["type"] = "invoice"

    if doc.get("status") not in _LEGACY_STATUSES:
        doc["status"] = "draft"

    items = doc.get("items") or []
    for item in items:
        if not item.get("id"):
            item["id"] = gen_id("item_")
    doc["items"] = items

    events: List[Dict[str, Any]] = []
    for event in doc.get("events") or []:
        if not isinstance(event, dict):
            continue
        event.setdefault("id", gen_id("evt_"))
        event.setdefault("at", _now_iso())
        if event.get("type") not in _EVENT_TYPES:
            event["type"] = "UPDATED"
        if "meta" in event and not isinstance(event["meta"], dict):
            del event["meta"]
        events.append(event)
    doc["events"] = events

    if not doc.get("currency"):
        doc["currency"] = "USD"
    if not doc.get("createdAt"):
        doc["createdAt"] = _now_iso()
    if not doc.get("updatedAt"):
        doc["updatedAt"] = doc["createdAt"]

    for field in ("subtotal", "tax", "total"):
        if not isinstance(doc.get(field), (int, float, str)):
            doc[field] = 0

    sent = doc.get("sent")
    if "sent" in doc and (not isinstance(sent, dict) or not sent.get("sentAt")):
        del doc["sent"]
    elif isinstance(sent, dict):
        sent.setdefault("method", "manual")
    return doc


_RENAMES = {
    "type": "document_type",
    "invoiceNumber": "document_number",
    "customerId": "customer_id",
    "items": "line_items",
    "tax": "tax_amount",
    "originQuoteId": "origin_quote_id",
    "archivedAt": "archived_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "paymentTerms": "payment_terms",
    "customNetDays": "custom_net_days",
}
_ITEM_RENAMES = {"qty": "quantity", "unitPrice": "unit_price", "productId": "product_id"}
_EVENT_RENAMES = {"at": "occurred_at", "meta": "metadata"}
_SENT_RENAMES = {"toEmail": "to_email", "sentAt": "sent_at"}


def _rename(d: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    return {mapping.get(k, k): v for k, v in d.items()}


def _v2_snake_case(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = _rename(doc, _RENAMES)
    doc["line_items"] = [_rename(it, _ITEM_RENAMES) for it in doc.get("line_items") or []]
    events = []
    for ev in doc.get("events") or []:
        ev = _rename(ev, _EVENT_RENAMES)
        ev["metadata"] = {str(k): str(v) for k, v in (ev.get("metadata") or {}).items()}
        events.append(ev)
    doc["events"] = events
    if isinstance(doc.get("sent"), dict):
        doc["sent"] = _rename(doc["sent"], _SENT_RENAMES)

    doc.setdefault("payment_terms", "due_on_receipt")
    if "number_sequence" not in doc:
        if doc.get("document_type") == "quote":
            doc["number_sequence"] = "quote"
        elif doc.get("status") == "draft" and not doc.get("origin_quote_id"):
            doc["number_sequence"] = "draft"
        else:
            doc["number_sequence"] = "invoice"
    return doc


MIGRATIONS: List[Tuple[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = [
    (1, _v1_normalize_legacy),
    (2, _v2_snake_case),
]


def migrate_document(raw: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Return ``(record, changed)`` with ``record`` at CURRENT_VERSION."""
    version = int(raw.get("schema_version") or 0)
    if version >= CURRENT_VERSION:
        return raw, False
    doc = copy.deepcopy(raw)
    for target, step in MIGRATIONS:
        if version < target:
            doc = step(doc)
            doc["schema_version"] = target
            version = target
    return doc, True
