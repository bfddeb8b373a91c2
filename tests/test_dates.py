"""
Unit tests for calendar helpers.
"""

from datetime import datetime, timezone

import pytest

from ai_usage_ledger.utils.dates import (
    InvalidDateRangeError,
    get_date_range,
    get_iso_week_string,
    get_month_string,
    is_valid_date,
    subtract_days,
    to_local_date,
    utc_timestamp,
)


class TestIsValidDate:

    def test_valid(self):
        assert is_valid_date("2026-02-17")

    def test_invalid_calendar_day(self):
        """Verify impossible dates are rejected."""
        assert not is_valid_date("2026-02-30")

    def test_wrong_format(self):
        assert not is_valid_date("17/02/2026")
        assert not is_valid_date("2026-2-17")


class TestDateRange:

    def test_inclusive(self):
        """Verify both ends are included."""
        assert get_date_range("2026-02-27", "2026-03-02") == [
            "2026-02-27", "2026-02-28", "2026-03-01", "2026-03-02",
        ]

    def test_single_day(self):
        assert get_date_range("2026-02-17", "2026-02-17") == ["2026-02-17"]

    def test_inverted_range_raises(self):
        """Verify a range ending before it starts raises."""
        with pytest.raises(InvalidDateRangeError):
            get_date_range("2026-02-18", "2026-02-17")


class TestIsoWeek:
    """Test ISO-8601 week labels."""

    def test_mid_year(self):
        assert get_iso_week_string("2026-02-19") == "2026-W08"

    def test_late_december_in_next_year(self):
        """Verify 2025-12-29 belongs to 2026-W01."""
        assert get_iso_week_string("2025-12-29") == "2026-W01"

    def test_early_january_in_previous_year(self):
        """Verify 2027-01-01 (a Friday) belongs to 2026-W53."""
        assert get_iso_week_string("2027-01-01") == "2026-W53"

    def test_zero_padded(self):
        assert get_iso_week_string("2026-01-05") == "2026-W02"


class TestHelpers:

    def test_month_string(self):
        assert get_month_string("2026-02-17") == "2026-02"

    def test_subtract_days_across_month(self):
        assert subtract_days("2026-03-01", 1) == "2026-02-28"

    def test_to_local_date(self):
        """Verify timestamps are bucketed by the given timezone."""
        assert to_local_date("2026-02-17T23:30:00.000Z") == "2026-02-17"
        assert to_local_date("2026-02-17T23:30:00.000Z", "Asia/Tokyo") == "2026-02-18"

    def test_utc_timestamp_format(self):
        """Verify millisecond precision and Z suffix."""
        moment = datetime(2026, 2, 18, 1, 2, 3, 456789, tzinfo=timezone.utc)
        assert utc_timestamp(moment) == "2026-02-18T01:02:03.456Z"
