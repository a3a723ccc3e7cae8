from __future__ import annotations

import os
import time
from datetime import datetime, timedelta

import pytest

from recall.dates import day_window, next_weekday, parse_due
from recall.models import ensure_aware

# Wednesday, local wall-clock time
NOW = datetime(2024, 1, 10, 15, 30)


@pytest.fixture()
def berlin_tz():
    """Run the test with the local zone set to Europe/Berlin (DST from 2024-03-31)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    saved = os.environ.get("TZ")
    os.environ["TZ"] = "Europe/Berlin"
    time.tzset()
    yield
    if saved is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = saved
    time.tzset()


@pytest.mark.parametrize(
    "text,expected",
    [
        ("today", datetime(2024, 1, 10, 9, 0)),
        ("Tomorrow", datetime(2024, 1, 11, 9, 0)),
        ("friday", datetime(2024, 1, 12, 9, 0)),
        ("mon", datetime(2024, 1, 15, 9, 0)),
        ("wednesday", datetime(2024, 1, 17, 9, 0)),
        ("2024-03-05", datetime(2024, 3, 5, 9, 0)),
        ("03/05/2025", datetime(2025, 3, 5, 9, 0)),
        ("Feb 2", datetime(2024, 2, 2, 9, 0)),
        ("February 29", datetime(2024, 2, 29, 9, 0)),
    ],
)
def test_parse_due(text, expected):
    got = parse_due(text, now=NOW)
    assert got.tzinfo is not None
    assert got == ensure_aware(expected)


@pytest.mark.parametrize("text", ["", "someday", "2024-13-01", "next tuesday"])
def test_parse_due_rejects_unknown(text):
    with pytest.raises(ValueError):
        parse_due(text, now=NOW)


def test_next_weekday_is_strictly_after():
    assert next_weekday(NOW, NOW.weekday()) == NOW + timedelta(days=7)
    assert next_weekday(NOW, 3) == NOW + timedelta(days=1)


class TestDaylightSaving:
    def test_date_after_dst_change_stays_at_nine(self, berlin_tz):
        got = parse_due("2024-07-15", now=datetime(2024, 1, 10, 12).astimezone())
        assert (got.hour, got.minute) == (9, 0)
        assert got.utcoffset() == timedelta(hours=2)

    def test_weekday_across_dst_change(self, berlin_tz):
        # Thursday 2024-03-28 (+01:00); the next Monday is 2024-04-01 (+02:00)
        got = parse_due("monday", now=datetime(2024, 3, 28, 12).astimezone())
        assert got.date().isoformat() == "2024-04-01"
        assert got.hour == 9
        assert got.utcoffset() == timedelta(hours=2)

    def test_week_window_across_dst_change(self, berlin_tz):
        after, before = day_window("week", now=datetime(2024, 3, 28, 12).astimezone())
        assert after.hour == 0 and after.utcoffset() == timedelta(hours=1)
        assert before.date().isoformat() == "2024-04-04"
        assert before.hour == 0 and before.utcoffset() == timedelta(hours=2)


class TestDayWindow:
    def test_today(self):
        after, before = day_window("today", now=NOW)
        assert after == ensure_aware(datetime(2024, 1, 10))
        assert before == ensure_aware(datetime(2024, 1, 11))

    def test_tomorrow(self):
        after, before = day_window("tomorrow", now=NOW)
        assert after == ensure_aware(datetime(2024, 1, 11))
        assert before == ensure_aware(datetime(2024, 1, 12))

    def test_week(self):
        after, before = day_window("week", now=NOW)
        assert after == ensure_aware(datetime(2024, 1, 10))
        assert before == ensure_aware(datetime(2024, 1, 17))

    def test_unknown(self):
        with pytest.raises(ValueError):
            day_window("fortnight", now=NOW)
