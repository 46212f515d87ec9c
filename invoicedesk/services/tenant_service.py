from __future__ import annotations
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from pydantic import ValidationError as SchemaError

from invoicedesk import config
from invoicedesk.errors import TenantConfigMissingError, ValidationError
from invoicedesk.models.common import utcnow
from invoicedesk.models.tenant import TRIAL_DURATION_DAYS, TRIAL_EXPIRING_DAYS, TaxConfig, TenantSettings, Trial, TrialStatus
from invoicedesk.storage.repo import JsonRepository

logger = logging.getLogger(__name__)


class TenantSettingsService:
    """Tenant settings: company, currency, tax, numbering counters, features."""

    def __init__(self, repo: Optional[JsonRepository] = None, data_dir: Optional[os.PathLike | str] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self.repo = repo or JsonRepository(
            config.data_path(config.TENANTS_JSON, data_dir),
            entity_name="tenant settings",
            key="tenant_id",
            backup_enabled=config.BACKUP_ENABLED,
            backup_keep=config.BACKUP_KEEP,
        )

    def find_settings(self, tenant_id: str) -> Optional[TenantSettings]:
        raw = self.repo.get_by_id(tenant_id)
        if raw is None:
            return None
        try:
            return TenantSettings.model_validate(raw)
        except SchemaError as exc:
            logger.warning("Invalid settings for tenant %s: %s", tenant_id, exc)
            return None

    def get_settings(self, tenant_id: str) -> TenantSettings:
        settings = self.find_settings(tenant_id)
        if settings is None:
            raise TenantConfigMissingError(f"No settings for tenant '{tenant_id}'; complete onboarding first")
        return settings

    def save_settings(self, settings: TenantSettings) -> TenantSettings:
        self.repo.replace(settings)
        return settings

    def complete_onboarding(self, tenant_id: str, **changes: Any) -> TenantSettings:
        """Merge `changes` over the current (or default) settings and flag onboarding done."""
        with self.repo.lock:
            current = self.repo.get_by_id(tenant_id) or dict(config.DEFAULT_TENANT_SETTINGS)
            payload = {**current, **changes, "tenant_id": tenant_id, "onboarding_completed": True}
            try:
                settings = TenantSettings.model_validate(payload)
            except SchemaError as exc:
                raise ValidationError(str(exc)) from exc
            self.save_settings(settings)
        logger.info("Tenant %s onboarded (currency=%s, tax=%s)", tenant_id, settings.currency, settings.tax_enabled)
        return settings

    def get_tax_config(self, tenant_id: str) -> TaxConfig:
        return self.get_settings(tenant_id).tax_config()

    def get_currency(self, tenant_id: str) -> str:
        currency = self.get_settings(tenant_id).currency
        if not currency:
            raise TenantConfigMissingError(f"No currency configured for tenant '{tenant_id}'")
        return currency

    # ----------- trial -----------
    def start_trial(self, tenant_id: str) -> Trial:
        """Return the tenant's trial, starting it now if it never started."""
        with self.repo.lock:
            settings = self.get_settings(tenant_id)
            if settings.trial is None:
                now = self.clock()
                settings.trial = Trial(starts_at=now, ends_at=now + timedelta(days=TRIAL_DURATION_DAYS))
                self.save_settings(settings)
                logger.info("Trial started for tenant %s, ends %s", tenant_id, settings.trial.ends_at)
            return settings.trial

    def trial_status(self, tenant_id: str) -> TrialStatus:
        trial = self.start_trial(tenant_id)
        now = self.clock()
        active = trial.is_active(now)
        days_left = trial.days_left(now)
        return TrialStatus(
            trial=trial,
            is_active=active,
            days_left=days_left,
            is_expiring_soon=active and days_left <= TRIAL_EXPIRING_DAYS,
        )
