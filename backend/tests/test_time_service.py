"""Tests for raw time specification → UTC conversion."""
from datetime import datetime, timedelta, timezone

import pytest

from app.errors import ValidationFailed
from app.services.time_service import convert, to_epoch_seconds


class TestExactTime:

    def test_start_and_end(self):
        start, end = convert({"start_time": "2026-06-01T18:00:00-07:00", "end_time": "2026-06-01T21:00:00-07:00"})
        assert start == datetime(2026, 6, 2, 1, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(hours=3)

    def test_zulu_suffix(self):
        start, end = convert({"start_time": "2026-06-01T18:00:00Z"})
        assert start == datetime(2026, 6, 1, 18, 0, tzinfo=timezone.utc)
        assert end is None

    def test_missing_offset_rejected(self):
        with pytest.raises(ValidationFailed):
            convert({"start_time": "2026-06-01T18:00:00"})

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationFailed):
            convert({"start_time": "2026-06-01T18:00:00Z", "end_time": "2026-06-01T17:00:00Z"})

    def test_end_without_start_rejected(self):
        with pytest.raises(ValidationFailed):
            convert({"end_time": "2026-06-01T17:00:00Z"})


class TestFuzzyTime:

    @pytest.mark.parametrize("granularity,hours", [
        ("morning", 4), ("afternoon", 4), ("evening", 4), ("night", 8), ("day", 12), ("weekend", 48),
    ])
    def test_durations(self, granularity, hours):
        start, end = convert({"period_granularity": granularity, "period_start": "2026-06-05T18:00:00Z"})
        assert end - start == timedelta(hours=hours)

    def test_granularity_is_case_insensitive(self):
        start, end = convert({"period_granularity": "WEEKEND", "period_start": "2026-06-05T18:00:00Z"})
        assert end - start == timedelta(hours=48)

    def test_unknown_granularity(self):
        with pytest.raises(ValidationFailed):
            convert({"period_granularity": "fortnight", "period_start": "2026-06-05T18:00:00Z"})

    def test_mixed_exact_and_fuzzy_rejected(self):
        with pytest.raises(ValidationFailed):
            convert({
                "period_granularity": "evening",
                "period_start": "2026-06-05T18:00:00Z",
                "start_time": "2026-06-05T18:00:00Z",
            })

    def test_period_start_requires_granularity(self):
        with pytest.raises(ValidationFailed):
            convert({"period_start": "2026-06-05T18:00:00Z"})


def test_no_input_is_unscheduled():
    assert convert(None) == (None, None)
    assert convert({}) == (None, None)


def test_epoch_seconds():
    assert to_epoch_seconds(None) is None
    assert to_epoch_seconds(datetime(1970, 1, 1, 0, 1, tzinfo=timezone.utc)) == 60
    assert to_epoch_seconds(datetime(1970, 1, 1, 0, 1)) == 60
