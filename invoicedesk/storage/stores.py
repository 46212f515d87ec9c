from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from invoicedesk import config
from invoicedesk.models.document import Document
from invoicedesk.models.payment import Payment
from invoicedesk.storage.migrations import migrate_document
from invoicedesk.storage.repo import JsonRepository

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def save(self, document: Document) -> Document: ...
    def find_by_id(self, document_id: str) -> Optional[Document]: ...
    def list_all(self) -> List[Document]: ...
    def delete(self, document_id: str) -> bool: ...


class PaymentStore(Protocol):
    def save(self, payment: Payment) -> Payment: ...
    def find_by_id(self, payment_id: str) -> Optional[Payment]: ...
    def delete(self, payment_id: str) -> bool: ...
    def list_all(self) -> List[Payment]: ...
    def list_by_invoice(self, invoice_id: str) -> List[Payment]: ...
    def list_by_customer(self, customer_id: str) -> List[Payment]: ...


class JsonDocumentStore:
    """Documents (invoices and quotes) in one JSON file, migrated on load."""

    def __init__(self, repo: Optional[JsonRepository] = None, data_dir: Optional[os.PathLike | str] = None,
                 default_tenant_id: Optional[str] = None):
        # records written before documents carried a tenant are claimed by default_tenant_id
        self.default_tenant_id = default_tenant_id
        self.repo = repo or JsonRepository(
            config.data_path(config.DOCUMENTS_JSON, data_dir),
            entity_name="document",
            backup_enabled=config.BACKUP_ENABLED,
            backup_keep=config.BACKUP_KEEP,
        )

    def _hydrate(self, raw: Dict) -> Optional[Document]:
        record, migrated = migrate_document(raw)
        if record.get("tenant_id") is None and self.default_tenant_id:
            record = {**record, "tenant_id": self.default_tenant_id}
            migrated = True
        try:
            doc = Document.model_validate(record)
        except ValidationError as exc:
            # skip unreadable records rather than failing the whole listing
            logger.warning("Skipping invalid document %s: %s", raw.get("id"), exc)
            return None
        if migrated:
            logger.info("Migrated document %s to schema v%s", doc.id, doc.schema_version)
            self.repo.replace(doc)
        return doc

    def save(self, document: Document) -> Document:
        self.repo.replace(document)
        return document

    def find_by_id(self, document_id: str) -> Optional[Document]:
        raw = self.repo.get_by_id(document_id)
        return self._hydrate(raw) if raw else None

    def delete(self, document_id: str) -> bool:
        return self.repo.delete(document_id)

    def list_all(self) -> List[Document]:
        out: List[Document] = []
        for raw in self.repo.list_all():
            doc = self._hydrate(raw)
            if doc is not None:
                out.append(doc)
        return out


class JsonPaymentStore:
    def __init__(self, repo: Optional[JsonRepository] = None, data_dir: Optional[os.PathLike | str] = None):
        self.repo = repo or JsonRepository(
            config.data_path(config.PAYMENTS_JSON, data_dir),
            entity_name="payment",
            backup_enabled=config.BACKUP_ENABLED,
            backup_keep=config.BACKUP_KEEP,
        )

    def _hydrate_all(self, rows: List[Dict]) -> List[Payment]:
        out: List[Payment] = []
        for d in rows:
            try:
                out.append(Payment.model_validate(d))
            except ValidationError as exc:
                logger.warning("Skipping invalid payment %s: %s", d.get("id"), exc)
        return out

    def save(self, payment: Payment) -> Payment:
        self.repo.add(payment)
        return payment

    def find_by_id(self, payment_id: str) -> Optional[Payment]:
        found = self._hydrate_all([r for r in [self.repo.get_by_id(payment_id)] if r])
        return found[0] if found else None

    def delete(self, payment_id: str) -> bool:
        return self.repo.delete(payment_id)

    def list_all(self) -> List[Payment]:
        return self._hydrate_all(self.repo.list_all())

    def list_by_invoice(self, invoice_id: str) -> List[Payment]:
        return self._hydrate_all(self.repo.find(lambda d: d.get("invoice_id") == invoice_id))

    def list_by_customer(self, customer_id: str) -> List[Payment]:
        return self._hydrate_all(self.repo.find(lambda d: d.get("customer_id") == customer_id))
