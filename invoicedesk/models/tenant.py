from __future__ import annotations
import math
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

TRIAL_DURATION_DAYS = 14
TRIAL_EXPIRING_DAYS = 3


class TenantFeatures(BaseModel):
    allow_recurring_invoices: bool = False
    allow_scheduled_send: bool = False
    allow_unlimited_cc: bool = False  # more than 2 CC recipients


class Trial(BaseModel):
    starts_at: datetime
    ends_at: datetime
    days: int = TRIAL_DURATION_DAYS

    def is_active(self, now: datetime) -> bool:
        return now < self.ends_at

    def days_left(self, now: datetime) -> int:
        """Whole days remaining, rounded up; 0 once the trial has ended."""
        return max(0, math.ceil((self.ends_at - now).total_seconds() / 86400))


class TrialStatus(BaseModel):
    trial: Trial
    is_active: bool
    days_left: int
    is_expiring_soon: bool


class TaxConfig(BaseModel):
    enabled: bool
    rate_percent: Decimal = Decimal("0")
    name: Optional[str] = None


class TenantSettings(BaseModel):
    tenant_id: str
    company_name: str = ""
    country: str = "CR"
    currency: str = "CRC"

    tax_enabled: bool = True
    tax_name: Optional[str] = "IVA"
    tax_rate: Optional[Decimal] = Field(default=Decimal("13"), ge=0, le=100)

    # one counter per sequence kind
    invoice_prefix: str = "INV-"
    next_invoice_number: int = Field(default=1, ge=1)
    draft_prefix: str = "DRF-"
    next_draft_number: int = Field(default=1, ge=1)
    quote_prefix: str = "COT-"
    next_quote_number: int = Field(default=1, ge=1)

    accepted_payment_methods: List[str] = Field(default_factory=list)
    onboarding_completed: bool = False
    features: TenantFeatures = Field(default_factory=TenantFeatures)
    trial: Optional[Trial] = None

    @model_validator(mode="after")
    def _check_tax(self):
        if self.tax_enabled:
            if not self.tax_name:
                raise ValueError("tax_name is required when tax is enabled")
            if self.tax_rate is None:
                raise ValueError("tax_rate is required when tax is enabled")
        return self

    def tax_config(self) -> TaxConfig:
        return TaxConfig(
            enabled=self.tax_enabled,
            rate_percent=self.tax_rate or Decimal("0"),
            name=self.tax_name,
        )
