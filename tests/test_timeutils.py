from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from homelab_dash.services.journey import resolve_range
from homelab_dash.errors import InvalidParameterError
from homelab_dash.utils.timeutils import day_range, format_clock, parse_timestamp

SYDNEY = ZoneInfo("Australia/Sydney")
EXPECTED = datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [1741564800, 1741564800000, "1741564800", "2025-03-10T00:00:00Z", "2025-03-10T11:00:00+11:00"],
)
def test_parse_timestamp_formats(value):
    assert parse_timestamp(value) == EXPECTED


@pytest.mark.parametrize("value", [None, "", "yesterday", True, [1]])
def test_parse_timestamp_rejects_garbage(value):
    assert parse_timestamp(value) is None


def test_format_clock_uses_local_time():
    assert format_clock(EXPECTED, SYDNEY) == "11:00"


def test_day_range_is_inclusive():
    start, end = day_range(date(2025, 3, 10), date(2025, 3, 11), SYDNEY)
    assert start.isoformat() == "2025-03-10T00:00:00+11:00"
    assert end.isoformat() == "2025-03-11T23:59:59.999000+11:00"


def test_resolve_range_defaults_to_today():
    now = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)  # 01:00 on the 11th in Sydney
    start, _, is_today = resolve_range(None, None, None, SYDNEY, now)
    assert start.date() == date(2025, 3, 11)
    assert is_today


def test_resolve_range_prefers_from_to():
    now = datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)
    start, end, is_today = resolve_range("2025-01-01", "2025-03-09", "2025-03-10", SYDNEY, now)
    assert (start.date(), end.date()) == (date(2025, 3, 9), date(2025, 3, 10))
    assert not is_today


def test_resolve_range_rejects_bad_dates():
    with pytest.raises(InvalidParameterError):
        resolve_range("10/03/2025", None, None, SYDNEY)
