from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, List, Literal, Optional
from datetime import date, datetime
from decimal import Decimal
from .common import gen_id, utcnow

DocumentType = Literal["invoice", "quote"]
DocumentStatus = Literal["draft", "issued", "sent", "paid", "archived"]
InitialStatus = Literal["draft", "issued"]
SequenceKind = Literal["draft", "quote", "invoice"]
PaymentTerms = Literal["due_on_receipt", "net_15", "net_30", "net_60", "net_90", "custom"]
RecurringFrequency = Literal["weekly", "biweekly", "monthly", "quarterly", "semiannual", "annual"]
EventType = Literal[
    "CREATED",
    "CREATED_DRAFT",
    "CREATED_FROM_QUOTE",
    "UPDATED",
    "EXPORTED_PDF",
    "MARKED_ISSUED",
    "SENT",
    "QUOTE_SENT",
    "CONVERTED_TO_INVOICE",
    "ARCHIVED",
    "MARKED_PAID",
]

# net days per payment term; "custom" reads Document.custom_net_days
NET_DAYS: Dict[str, Optional[int]] = {
    "due_on_receipt": None,
    "net_15": 15,
    "net_30": 30,
    "net_60": 60,
    "net_90": 90,
    "custom": None,
}


class LineItemInput(BaseModel):
    description: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)  # percent
    product_id: Optional[str] = None


class LineItem(LineItemInput):
    id: str = Field(default_factory=lambda: gen_id("item_"))


class DocumentEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: gen_id("evt_"))
    type: EventType
    occurred_at: datetime = Field(default_factory=utcnow)
    metadata: Dict[str, str] = Field(default_factory=dict)


class SentInfo(BaseModel):
    to_email: Optional[str] = None
    message: Optional[str] = None
    sent_at: datetime = Field(default_factory=utcnow)
    method: Literal["manual", "email"] = "manual"


class RecurringConfig(BaseModel):
    enabled: bool = False
    frequency: RecurringFrequency = "monthly"
    start_date: date
    end_date: Optional[date] = None
    next_generation_date: Optional[date] = None


class ScheduledSend(BaseModel):
    enabled: bool = False
    send_at: Optional[datetime] = None
    to_email: Optional[str] = None
    cc: List[str] = Field(default_factory=list)


class _DocumentFields(BaseModel):
    customer_id: str = Field(min_length=1)
    payment_terms: PaymentTerms = "due_on_receipt"
    custom_net_days: Optional[int] = Field(default=None, ge=1, le=365)
    line_items: List[LineItemInput] = Field(min_length=1)
    recurring_config: Optional[RecurringConfig] = None
    scheduled_send: Optional[ScheduledSend] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_custom_terms(self):
        if self.payment_terms == "custom" and self.custom_net_days is None:
            raise ValueError("custom_net_days is required when payment_terms is 'custom'")
        if self.payment_terms != "custom" and self.custom_net_days is not None:
            raise ValueError("custom_net_days is only allowed with 'custom' payment terms")
        return self


class DocumentInput(_DocumentFields):
    """Payload for DocumentService.create."""
    document_type: DocumentType = "invoice"
    status: InitialStatus = "draft"
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class DocumentUpdate(_DocumentFields):
    """Payload for DocumentService.update. Type, currency and status are kept."""


class Document(BaseModel):
    id: str = Field(default_factory=lambda: gen_id("inv_"))
    tenant_id: Optional[str] = None  # None only on unclaimed legacy records
    document_type: DocumentType = "invoice"
    document_number: str
    number_sequence: SequenceKind
    customer_id: str
    currency: str

    line_items: List[LineItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")

    status: DocumentStatus = "draft"
    payment_terms: PaymentTerms = "due_on_receipt"
    custom_net_days: Optional[int] = None
    due_date: Optional[date] = None

    origin_quote_id: Optional[str] = None
    sent: Optional[SentInfo] = None
    archived_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    recurring_config: Optional[RecurringConfig] = None
    scheduled_send: Optional[ScheduledSend] = None
    notes: Optional[str] = None

    events: List[DocumentEvent] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    schema_version: int = 2

    model_config = ConfigDict(extra="ignore")  # tolerate stray keys from old JSON

    def append_event(self, type: EventType, metadata: Optional[Dict[str, str]] = None,
                     at: Optional[datetime] = None) -> DocumentEvent:
        event = DocumentEvent(type=type, occurred_at=at or utcnow(), metadata=dict(metadata or {}))
        self.events.append(event)
        self.updated_at = event.occurred_at
        return event

    def event_types(self) -> List[str]:
        return [e.type for e in self.events]
