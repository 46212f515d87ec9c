from __future__ import annotations


class InvoiceDeskError(Exception):
    """Base class for domain errors raised by the invoicedesk services."""


class ValidationError(InvoiceDeskError, ValueError):
    """
    Malformed input (empty line items, quantity <= 0, missing custom net days...).

    Raised before any state change; the caller fixes the input and retries.
    """


class NotFoundError(InvoiceDeskError, LookupError):
    pass


class InvalidDocumentTypeError(InvoiceDeskError):
    """Operation not available for this document type (e.g. converting an invoice)."""


class InvalidTransitionError(InvoiceDeskError):
    """Status change not permitted from the document's current status."""

    def __init__(self, document_id: str, from_status: str, to_status: str, message: str | None = None):
        self.document_id = document_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Cannot move document {document_id} from '{from_status}' to '{to_status}'"
        )


class TenantConfigMissingError(InvoiceDeskError):
    """Tax / currency settings unavailable; tenant onboarding must run first."""
