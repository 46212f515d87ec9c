from __future__ import annotations

from datetime import date, timedelta
from typing import Dict

from dateutil.relativedelta import relativedelta

from invoicedesk.models.document import RecurringConfig, RecurringFrequency

# relativedelta clamps to the last day of the target month: Jan 31 + 1 month = Feb 28/29
OFFSETS: Dict[str, object] = {
    "weekly": timedelta(days=7),
    "biweekly": timedelta(days=15),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "semiannual": relativedelta(months=6),
    "annual": relativedelta(years=1),
}


def next_occurrence(start: date, frequency: RecurringFrequency) -> date:
    try:
        offset = OFFSETS[frequency]
    except KeyError:
        raise ValueError(f"Unknown recurring frequency '{frequency}'") from None
    return start + offset


def schedule(config: RecurringConfig) -> RecurringConfig:
    """Fill next_generation_date for an enabled config; disabled ones are cleared."""
    if not config.enabled:
        return config.model_copy(update={"next_generation_date": None})
    nxt = next_occurrence(config.start_date, config.frequency)
    if config.end_date is not None and nxt > config.end_date:
        nxt = None
    return config.model_copy(update={"next_generation_date": nxt})
