from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import NOW, TENANT
from invoicedesk.errors import TenantConfigMissingError, ValidationError
from invoicedesk.services.tenant_service import TenantSettingsService


def test_onboarding_applies_defaults(tmp_path):
    svc = TenantSettingsService(data_dir=tmp_path)
    settings = svc.complete_onboarding("t1", company_name="Foo")
    assert settings.onboarding_completed
    assert settings.currency == "CRC"
    assert settings.invoice_prefix == "INV-"
    assert svc.get_tax_config("t1").rate_percent == Decimal("13")


def test_onboarding_merges_existing(tenants):
    settings = tenants.complete_onboarding(TENANT, quote_prefix="Q-")
    assert settings.quote_prefix == "Q-"
    assert settings.company_name == "Acme S.A."
    assert settings.currency == "USD"


def test_onboarding_rejects_bad_tax(tmp_path):
    svc = TenantSettingsService(data_dir=tmp_path)
    with pytest.raises(ValidationError):
        svc.complete_onboarding("t1", tax_enabled=True, tax_name=None)
    assert svc.find_settings("t1") is None


def test_missing_tenant(tmp_path):
    svc = TenantSettingsService(data_dir=tmp_path)
    assert svc.find_settings("nobody") is None
    with pytest.raises(TenantConfigMissingError):
        svc.get_tax_config("nobody")
    with pytest.raises(TenantConfigMissingError):
        svc.get_currency("nobody")


def test_tax_disabled(tenants):
    tax = tenants.get_tax_config(TENANT)
    assert tax.enabled is False
    assert tenants.get_currency(TENANT) == "USD"


def test_settings_persist_across_instances(tenants, tmp_path):
    reloaded = TenantSettingsService(data_dir=tmp_path)
    assert reloaded.get_settings(TENANT).company_name == "Acme S.A."


def test_trial_starts_once(tenants, clock):
    trial = tenants.start_trial(TENANT)
    assert trial.starts_at == NOW
    assert trial.ends_at == NOW + timedelta(days=14)

    clock.now = NOW + timedelta(days=5)
    assert tenants.start_trial(TENANT) == trial


@pytest.mark.parametrize(
    "elapsed,active,days_left,expiring",
    [
        (timedelta(0), True, 14, False),
        (timedelta(days=10), True, 4, False),
        (timedelta(days=11, hours=1), True, 3, True),
        (timedelta(days=13, hours=23), True, 1, True),
        (timedelta(days=14), False, 0, False),
        (timedelta(days=30), False, 0, False),
    ],
)
def test_trial_status(tenants, clock, elapsed, active, days_left, expiring):
    tenants.start_trial(TENANT)
    clock.now = NOW + elapsed
    status = tenants.trial_status(TENANT)
    assert (status.is_active, status.days_left, status.is_expiring_soon) == (active, days_left, expiring)


def test_trial_needs_settings(tmp_path):
    with pytest.raises(TenantConfigMissingError):
        TenantSettingsService(data_dir=tmp_path).trial_status("nobody")
