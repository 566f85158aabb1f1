# homelab_dash/utils/timeutils.py
"""Time parsing and formatting helpers."""

from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

from dateutil import parser as dateparser

# anything below this, read as milliseconds, is a year-2000-or-earlier instant,
# so the number is taken to be unix seconds instead
_MS_YEAR_2000 = 946684800000


def tzinfo_from_name(tz_name: str) -> tzinfo:
    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfoNotFoundError / ValueError depending on the name
        raise ValueError(f"Invalid timezone: {tz_name!r}") from exc


def parse_timestamp(value: Union[int, float, str, None]) -> Optional[datetime]:
    """Parse unix seconds, unix milliseconds or an ISO string to an aware UTC datetime.

    Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            value = float(s)
        except ValueError:
            try:
                dt = dateparser.isoparse(s)
            except (ValueError, OverflowError):
                return None
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)
    try:
        num = float(value)
        seconds = num if num < _MS_YEAR_2000 else num / 1000.0
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def format_clock(dt: datetime, tz: tzinfo) -> str:
    """24-hour HH:MM in the given timezone."""
    return dt.astimezone(tz).strftime("%H:%M")


def iso_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_day(text: str) -> date:
    """Parse a YYYY-MM-DD query value."""
    return date.fromisoformat(text.strip())


def day_range(start_day: date, end_day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Inclusive [start 00:00:00.000, end 23:59:59.999] in tz."""
    start = datetime.combine(start_day, time.min).replace(tzinfo=tz)
    end = datetime.combine(end_day, time(23, 59, 59, 999000)).replace(tzinfo=tz)
    return start, end


def today_in(tz: tzinfo, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()
