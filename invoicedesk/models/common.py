from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone
import uuid

CENT = Decimal("0.01")


def gen_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_money(value) -> Decimal:
    """Round to the cent, half up (0.005 -> 0.01)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

