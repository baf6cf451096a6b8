"""
Tests for recurrence expansion.

Coverage:
- none / daily / weekly / monthly stepping
- Inclusive end date
- 365 occurrence safety cap and truncation flag
- Validation of missing or inverted end dates
"""

from datetime import date, datetime, timedelta

import pytest

from appointment_core.db.enums import RecurrencePattern
from appointment_core.services.recurrence_service import (
    expand,
    expand_dates,
    validate_recurrence,
)


class TestExpand:
    """Occurrence date generation."""

    def test_none_yields_only_start(self):
        start = date(2030, 3, 1)
        assert expand_dates(start, RecurrencePattern.NONE, None) == [start]
        assert expand_dates(start, "none", date(2030, 12, 31)) == [start]

    def test_daily_includes_end_date(self):
        dates = expand_dates(date(2030, 3, 1), "daily", date(2030, 3, 5))
        assert dates == [date(2030, 3, d) for d in range(1, 6)]

    def test_daily_count_matches_day_span(self):
        start, end = date(2030, 1, 1), date(2030, 2, 14)
        assert len(expand_dates(start, "daily", end)) == (end - start).days + 1

    def test_weekly_steps_seven_days(self):
        dates = expand_dates(date(2030, 3, 1), "weekly", date(2030, 3, 28))
        assert dates == [date(2030, 3, 1), date(2030, 3, 8), date(2030, 3, 15), date(2030, 3, 22)]
        assert all(b - a == timedelta(days=7) for a, b in zip(dates, dates[1:]))

    def test_weekly_january_example(self):
        expansion = expand(date(2024, 1, 1), "weekly", date(2024, 1, 22))
        assert expansion.dates == [
            date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)
        ]
        assert not expansion.truncated

    def test_monthly_three_occurrences(self):
        dates = expand_dates(date(2030, 3, 1), "monthly", date(2030, 5, 1))
        assert dates == [date(2030, 3, 1), date(2030, 4, 1), date(2030, 5, 1)]

    def test_monthly_steps_from_previous_occurrence(self):
        dates = expand_dates(date(2032, 1, 31), "monthly", date(2032, 3, 31))
        # Clamped to Feb 29, then the next month follows the clamped day
        assert dates == [date(2032, 1, 31), date(2032, 2, 29), date(2032, 3, 29)]

    def test_datetime_keeps_time_of_day(self):
        start = datetime(2030, 3, 1, 14, 30)
        dates = expand_dates(start, "weekly", date(2030, 3, 15))
        assert [d.time() for d in dates] == [start.time()] * 3
        assert dates[-1] == datetime(2030, 3, 15, 14, 30)

    def test_end_equal_to_start_yields_single_date(self):
        start = date(2030, 3, 1)
        assert expand_dates(start, "daily", start) == [start]

    def test_cap_truncates_long_daily_series(self, caplog):
        result = expand(date(2030, 1, 1), "daily", date(2032, 12, 31))
        assert result.count == 365
        assert result.truncated is True
        assert "recurrence_truncated" in caplog.text

    def test_exactly_365_is_not_truncated(self):
        start = date(2030, 1, 1)
        result = expand(start, "daily", start + timedelta(days=364))
        assert result.count == 365
        assert result.truncated is False

    def test_missing_end_date_rejected(self):
        with pytest.raises(ValueError):
            expand(date(2030, 1, 1), "weekly", None)

    def test_unknown_pattern_rejected(self):
        with pytest.raises(ValueError):
            expand(date(2030, 1, 1), "yearly", date(2031, 1, 1))


class TestValidateRecurrence:
    """Pre-save checks for recurring bookings."""

    def test_none_needs_no_end_date(self):
        validate_recurrence(datetime(2030, 3, 1, 9), "none", None)

    def test_end_date_required(self):
        with pytest.raises(ValueError, match="end date"):
            validate_recurrence(datetime(2030, 3, 1, 9), "daily", None)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            validate_recurrence(datetime(2030, 3, 1, 9), "monthly", date(2030, 2, 28))
