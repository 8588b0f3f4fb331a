# telepsy/core/business.py
"""
Business-clock helpers.

Availability slots are minute-of-day integers in the business time zone.
Appointment instants are stored in UTC. A local date+time becomes a UTC
instant as "local midnight, as an absolute instant, plus the minute offset",
so a time on a DST-change day lands where the booking clients expect it.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from telepsy.core.config import settings
from telepsy.core.errors import InvalidParameter

LOCAL_TZ = ZoneInfo(settings.BUSINESS_TIMEZONE)
UTC = timezone.utc

MINUTES_PER_DAY = 24 * 60
DATE_FORMAT = "%Y-%m-%d"


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values and convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidParameter(f"Invalid date '{value}', expected yyyy-MM-dd")


def parse_minutes(value: str) -> int:
    """'HH:mm' -> minutes since midnight."""
    try:
        hours, minutes = value.split(":")
        total = int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        raise InvalidParameter(f"Invalid time '{value}', expected HH:mm")
    if not 0 <= int(minutes) < 60 or not 0 <= total < MINUTES_PER_DAY:
        raise InvalidParameter(f"Invalid time '{value}', expected HH:mm")
    return total


def parse_slot_bound(value: str) -> int:
    """Like parse_minutes, but accepts "24:00" as the end of the day."""
    if value == "24:00":
        return MINUTES_PER_DAY
    return parse_minutes(value)


def format_slot_bound(minutes: int) -> str:
    if minutes == MINUTES_PER_DAY:
        return "24:00"
    return format_minutes(minutes)


def format_minutes(minutes: int) -> str:
    """Minutes since midnight -> 'HH:mm' (wraps around the day)."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def local_midnight(day: date) -> datetime:
    """Business-local midnight of `day` as a UTC instant."""
    return datetime.combine(day, time.min, tzinfo=LOCAL_TZ).astimezone(UTC)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """[midnight, next midnight) of a business-local day, in UTC."""
    return local_midnight(day), local_midnight(day + timedelta(days=1))


def local_month_bounds(day: date) -> tuple[datetime, datetime]:
    first = day.replace(day=1)
    nxt = (first + timedelta(days=32)).replace(day=1)
    return local_midnight(first), local_midnight(nxt)


def local_window(day: date, start_minute: int, duration_min: int) -> tuple[datetime, datetime]:
    """UTC [start, end) of an appointment given its local day and minute-of-day."""
    start = local_midnight(day) + timedelta(minutes=start_minute)
    return start, start + timedelta(minutes=duration_min)


def local_today(now: datetime | None = None) -> date:
    return ensure_utc(now or utcnow()).astimezone(LOCAL_TZ).date()


def local_minute_of_day(dt: datetime) -> int:
    """Minute-of-day of an instant on the business clock."""
    local = ensure_utc(dt).astimezone(LOCAL_TZ)
    return local.hour * 60 + local.minute


def daterange(start: date, end: date, step_days: int = 1):
    """Dates from start to end inclusive."""
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=step_days)


def format_local(dt: datetime, fmt: str = "%d-%m-%Y %H:%M") -> str:
    return ensure_utc(dt).astimezone(LOCAL_TZ).strftime(fmt)
