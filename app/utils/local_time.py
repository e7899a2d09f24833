"""Business-time-zone helpers.

Rental dates are civil dates at the rental office. Timestamps are always
time-zone aware; naive input is read as office local time.
"""

from datetime import date, datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo

from app.config import settings


@lru_cache
def business_tz() -> ZoneInfo:
    """Time zone the rental office operates in."""
    return ZoneInfo(settings.business_timezone)


def business_now() -> datetime:
    """Current time at the rental office."""
    return datetime.now(business_tz())


def ensure_aware(value: datetime) -> datetime:
    """Attach the office time zone to naive timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=business_tz())
    return value


def to_business_time(value: datetime | None) -> datetime | None:
    """Express a stored timestamp in office local time."""
    if value is None:
        return None
    return ensure_aware(value).astimezone(business_tz())


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` clock time."""
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def combine_local(day: date | datetime, clock: str) -> datetime:
    """Combine a calendar day with an ``HH:MM`` office-local clock time."""
    if isinstance(day, datetime):
        day = ensure_aware(day).astimezone(business_tz()).date()
    return datetime.combine(day, parse_clock(clock), tzinfo=business_tz())
