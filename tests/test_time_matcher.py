"""Tests for the time matcher."""
from datetime import datetime

import pytest
import pytz

from medreminder.services.time_matcher import (
    current_time_string,
    is_valid_time_string,
    normalize_time_string,
)


class TestCurrentTimeString:

    def test_formats_in_configured_zone(self):
        now = pytz.utc.localize(datetime(2026, 10, 18, 23, 5))
        assert current_time_string(now, "Asia/Tokyo") == "08:05"

    def test_naive_datetime_is_treated_as_utc(self):
        assert current_time_string(datetime(2026, 10, 18, 0, 0), "Asia/Tokyo") == "09:00"

    def test_zero_pads_hour_and_minute(self):
        now = pytz.utc.localize(datetime(2026, 1, 1, 0, 7))
        assert current_time_string(now, "UTC") == "00:07"

    def test_uses_24_hour_clock(self):
        now = pytz.utc.localize(datetime(2026, 1, 1, 14, 30))
        assert current_time_string(now, "Asia/Tokyo") == "23:30"

    def test_same_instant_differs_by_zone(self):
        now = pytz.utc.localize(datetime(2026, 7, 1, 12, 0))
        assert current_time_string(now, "Asia/Tokyo") == "21:00"
        assert current_time_string(now, "America/New_York") == "08:00"

    def test_defaults_to_current_clock(self):
        assert is_valid_time_string(current_time_string())


class TestTimeStringValidation:

    @pytest.mark.parametrize("value", ["00:00", "08:00", "8:00", "19:59", "23:59"])
    def test_valid(self, value):
        assert is_valid_time_string(value)

    @pytest.mark.parametrize("value", ["24:00", "08:60", "8", "08-00", "", " 08:00", "08:00:00", None, 800, "ab:cd"])
    def test_invalid(self, value):
        assert not is_valid_time_string(value)

    def test_normalize_pads_single_digit_hour(self):
        assert normalize_time_string("8:05") == "08:05"

    def test_normalize_rejects_malformed(self):
        assert normalize_time_string("25:00") is None
