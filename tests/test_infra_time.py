"""Tests for time utilities."""

from datetime import datetime, timedelta, timezone

from inboxly.infra.time import from_iso, from_unix, utc_now


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc


class TestFromUnix:
    def test_seconds(self):
        assert from_unix(1700000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_digit_string(self):
        assert from_unix("1700000000") == from_unix(1700000000)

    def test_milliseconds(self):
        assert from_unix(1700000000000) == from_unix(1700000000)

    def test_missing_falls_back_to_now(self):
        before = datetime.now(timezone.utc)
        result = from_unix(None)
        assert before <= result <= datetime.now(timezone.utc)

    def test_garbage_falls_back_to_now(self):
        assert abs(from_unix("yesterday") - utc_now()) < timedelta(seconds=5)
        assert abs(from_unix(True) - utc_now()) < timedelta(seconds=5)


class TestFromIso:
    def test_zulu(self):
        assert from_iso("2024-03-01T10:15:00Z") == datetime(2024, 3, 1, 10, 15, tzinfo=timezone.utc)

    def test_offset_kept(self):
        parsed = from_iso("2024-03-01T15:15:00+05:00")
        assert parsed == datetime(2024, 3, 1, 10, 15, tzinfo=timezone.utc)

    def test_naive_assumed_utc(self):
        assert from_iso("2024-03-01T10:15:00").tzinfo == timezone.utc

    def test_invalid_falls_back_to_now(self):
        assert abs(from_iso("not a date") - utc_now()) < timedelta(seconds=5)
        assert abs(from_iso(None) - utc_now()) < timedelta(seconds=5)
