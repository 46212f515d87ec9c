from datetime import date

import pytest

from invoicedesk.models.document import RecurringConfig
from invoicedesk.services.recurring import next_occurrence, schedule


@pytest.mark.parametrize(
    "frequency,expected",
    [
        ("weekly", date(2024, 3, 22)),
        ("biweekly", date(2024, 3, 30)),
        ("monthly", date(2024, 4, 15)),
        ("quarterly", date(2024, 6, 15)),
        ("semiannual", date(2024, 9, 15)),
        ("annual", date(2025, 3, 15)),
    ],
)
def test_offsets(frequency, expected):
    assert next_occurrence(date(2024, 3, 15), frequency) == expected


def test_month_end_clamps_to_last_day():
    assert next_occurrence(date(2024, 1, 31), "monthly") == date(2024, 2, 29)
    assert next_occurrence(date(2023, 1, 31), "monthly") == date(2023, 2, 28)
    assert next_occurrence(date(2024, 8, 31), "semiannual") == date(2025, 2, 28)
    assert next_occurrence(date(2024, 2, 29), "annual") == date(2025, 2, 28)


def test_year_rollover():
    assert next_occurrence(date(2024, 12, 28), "weekly") == date(2025, 1, 4)
    assert next_occurrence(date(2024, 11, 30), "quarterly") == date(2025, 2, 28)


def test_unknown_frequency():
    with pytest.raises(ValueError):
        next_occurrence(date(2024, 1, 1), "daily")


def test_schedule_respects_end_date_and_enabled():
    cfg = RecurringConfig(enabled=True, frequency="monthly", start_date=date(2024, 1, 10))
    assert schedule(cfg).next_generation_date == date(2024, 2, 10)

    ended = cfg.model_copy(update={"end_date": date(2024, 2, 1)})
    assert schedule(ended).next_generation_date is None

    disabled = cfg.model_copy(update={"enabled": False, "next_generation_date": date(2024, 2, 10)})
    assert schedule(disabled).next_generation_date is None
