from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from .common import gen_id, utcnow

PaymentStatus = Literal["unpaid", "partial", "paid", "overpaid"]


class Payment(BaseModel):
    id: str = Field(default_factory=lambda: gen_id("pay_"))
    invoice_id: str
    invoice_number: Optional[str] = None
    customer_id: Optional[str] = None
    amount: Decimal = Field(gt=0)
    method: str = "cash"  # cash, card, transfer, check, ...
    paid_at: datetime = Field(default_factory=utcnow)
    reference: Optional[str] = None  # transfer reference, check number...
    bank_info: Optional[str] = None
    notes: Optional[str] = None
    tenant_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class PaymentInfo(BaseModel):
    invoice_id: str
    invoice_total: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    payments: List[Payment] = Field(default_factory=list)


class MethodTotals(BaseModel):
    count: int = 0
    amount: Decimal = Decimal("0")


class PaymentSummary(BaseModel):
    total_payments: int = 0
    total_amount: Decimal = Decimal("0")
    by_method: dict[str, MethodTotals] = Field(default_factory=dict)
    recent_payments: List[Payment] = Field(default_factory=list)
