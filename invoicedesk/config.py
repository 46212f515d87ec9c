from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

# --- Base paths ---
ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.environ.get("INVOICEDESK_DATA_DIR", ROOT_DIR / "data"))

DOCUMENTS_JSON = "documents.json"
PAYMENTS_JSON = "payments.json"
TENANTS_JSON = "tenant_settings.json"

BACKUP_ENABLED = os.environ.get("INVOICEDESK_BACKUP", "1") not in ("0", "false", "no")
BACKUP_KEEP = int(os.environ.get("INVOICEDESK_BACKUP_KEEP", "5"))

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Defaults applied to a tenant before onboarding changes them
DEFAULT_TENANT_SETTINGS = {
    "company_name": "",
    "country": "CR",
    "currency": "CRC",
    "tax_enabled": True,
    "tax_name": "IVA",
    "tax_rate": "13",
    "invoice_prefix": "INV-",
    "next_invoice_number": 1,
    "draft_prefix": "DRF-",
    "next_draft_number": 1,
    "quote_prefix": "COT-",
    "next_quote_number": 1,
    "onboarding_completed": False,
}


def data_path(name: str, data_dir: Optional[os.PathLike | str] = None) -> Path:
    base = Path(data_dir) if data_dir else DATA_DIR
    return base / name


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or os.environ.get("INVOICEDESK_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
