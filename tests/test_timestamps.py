# tests/test_timestamps.py
"""Unit tests for epoch-millisecond timestamp normalization."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date, datetime, timedelta, timezone
from app.utils.timestamps import SECONDS_THRESHOLD, normalize_timestamp

NEW_YEAR_2024_MS = 1704067200000


class TestNumericTimestamps:
    def test_seconds_are_scaled_to_ms(self):
        assert normalize_timestamp(1_700_000_000) == 1_700_000_000_000

    def test_ms_pass_through(self):
        assert normalize_timestamp(1_700_000_000_123) == 1_700_000_000_123

    def test_threshold_boundary(self):
        assert normalize_timestamp(SECONDS_THRESHOLD - 1) == (SECONDS_THRESHOLD - 1) * 1000
        assert normalize_timestamp(SECONDS_THRESHOLD) == SECONDS_THRESHOLD

    def test_fractional_seconds_rounded(self):
        assert normalize_timestamp(1_700_000_000.5) == 1_700_000_000_500

    def test_nan_and_inf(self):
        assert normalize_timestamp(float("nan")) is None
        assert normalize_timestamp(float("inf")) is None

    def test_bool_is_not_a_timestamp(self):
        assert normalize_timestamp(True) is None


class TestTextAndDatetimeTimestamps:
    def test_none(self):
        assert normalize_timestamp(None) is None

    def test_digit_string(self):
        assert normalize_timestamp("1700000000") == 1_700_000_000_000
        assert normalize_timestamp(" 1700000000123 ") == 1_700_000_000_123

    def test_iso_with_z(self):
        assert normalize_timestamp("2024-01-01T00:00:00Z") == NEW_YEAR_2024_MS

    def test_iso_with_offset(self):
        assert normalize_timestamp("2024-01-01T02:00:00+02:00") == NEW_YEAR_2024_MS

    def test_unparseable_string(self):
        assert normalize_timestamp("yesterday") is None
        assert normalize_timestamp("") is None

    def test_naive_datetime_is_utc(self):
        assert normalize_timestamp(datetime(2024, 1, 1)) == NEW_YEAR_2024_MS

    def test_aware_datetime(self):
        tz = timezone(timedelta(hours=-5))
        assert normalize_timestamp(datetime(2023, 12, 31, 19, 0, tzinfo=tz)) == NEW_YEAR_2024_MS

    def test_date_is_midnight_utc(self):
        assert normalize_timestamp(date(2024, 1, 1)) == NEW_YEAR_2024_MS

    def test_ms_round_trip(self):
        ms = 1_712_345_678_901
        dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
        assert normalize_timestamp(dt) == ms

    def test_unsupported_type(self):
        assert normalize_timestamp({"ts": 1}) is None
