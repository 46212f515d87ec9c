from datetime import datetime, timezone

import pytest

from invoicedesk.services.document_service import DocumentService
from invoicedesk.services.payment_service import PaymentService
from invoicedesk.services.tenant_service import TenantSettingsService
from invoicedesk.storage.stores import JsonDocumentStore, JsonPaymentStore

TENANT = "acme"
NOW = datetime(2024, 1, 31, 9, 30, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def tenants(tmp_path, clock):
    svc = TenantSettingsService(data_dir=tmp_path, clock=clock)
    svc.complete_onboarding(
        TENANT,
        company_name="Acme S.A.",
        currency="USD",
        tax_enabled=False,
        invoice_prefix="INV-",
        draft_prefix="DRF-",
        quote_prefix="COT-",
    )
    return svc


@pytest.fixture
def documents(tmp_path, tenants, clock):
    return DocumentService(JsonDocumentStore(data_dir=tmp_path), tenants, TENANT, clock=clock)


@pytest.fixture
def payments(tmp_path, documents):
    return PaymentService(JsonPaymentStore(data_dir=tmp_path), documents)


def enable_tax(tenants, rate):
    settings = tenants.get_settings(TENANT)
    tenants.save_settings(settings.model_copy(update={"tax_enabled": True, "tax_name": "IVA", "tax_rate": rate}))


def doc_input(**overrides):
    data = {
        "customer_id": "cust_1",
        "status": "draft",
        "line_items": [{"description": "Consulting", "quantity": 2, "unit_price": 50, "discount": 0}],
    }
    data.update(overrides)
    return data
