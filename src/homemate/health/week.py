"""
HomeMate - Week date utilities.

Weeks are anchored on Monday. All date arithmetic works on plain UTC
calendar dates; the timezone is only used to decide what "today" is.
"""

import re
from datetime import date, datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_REGEX = re.compile(r"\d{4}-\d{2}-\d{2}")
DAYS_PER_WEEK = 7


def parse_iso_date(value: object) -> date | None:
    """
    Parse a strict YYYY-MM-DD string.

    Returns None for anything that is not a real calendar date:
        parse_iso_date("2024-02-29") -> date(2024, 2, 29)
        parse_iso_date("2024-02-30") -> None
        parse_iso_date("2024-2-3") -> None
    """
    if not isinstance(value, str) or not DATE_REGEX.fullmatch(value):
        return None
    year, month, day = (int(part) for part in value.split("-"))
    if not year or not month or not day:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_valid_timezone(value: object) -> bool:
    """True if value is an IANA timezone name known to the runtime."""
    if not isinstance(value, str) or not value:
        return False
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def add_days(ymd: str, days: int) -> str | None:
    parsed = parse_iso_date(ymd)
    if parsed is None:
        return None
    return (parsed + timedelta(days=days)).isoformat()


def get_local_date_parts(now: datetime, timezone: str) -> tuple[str, int] | None:
    """
    Local calendar date and weekday of `now` in `timezone`.

    Weekday follows datetime.weekday(): Monday=0 .. Sunday=6.
    Naive datetimes are treated as UTC.
    """
    if not is_valid_timezone(timezone):
        return None
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    local = now.astimezone(ZoneInfo(timezone))
    return local.date().isoformat(), local.weekday()


def compute_next_monday_week_start(now: datetime, timezone: str) -> str | None:
    """
    Week-start of the next week, strictly in the future.

    If it is already Monday in `timezone`, the following Monday is returned.
    """
    parts = get_local_date_parts(now, timezone)
    if parts is None:
        return None
    local_date, weekday = parts

    days_until_monday = (DAYS_PER_WEEK - weekday) % DAYS_PER_WEEK
    if days_until_monday == 0:
        days_until_monday = DAYS_PER_WEEK

    return add_days(local_date, days_until_monday)


def get_week_start_monday(ymd: str) -> str | None:
    """Monday on or before the given date."""
    parsed = parse_iso_date(ymd)
    if parsed is None:
        return None
    return (parsed - timedelta(days=parsed.weekday())).isoformat()


def build_week_days(week_start: date | str) -> list[str]:
    """The seven ISO dates of the week starting at week_start."""
    if isinstance(week_start, str):
        parsed = parse_iso_date(week_start)
        if parsed is None:
            raise ValueError(f"Invalid week start: {week_start!r}")
        week_start = parsed
    return [(week_start + timedelta(days=offset)).isoformat() for offset in range(DAYS_PER_WEEK)]


def is_date_in_week(date_value: object, week_start_value: object) -> bool:
    day = parse_iso_date(date_value)
    week_start = parse_iso_date(week_start_value)
    if day is None or week_start is None:
        return False
    diff_days = (day - week_start).days
    return 0 <= diff_days <= DAYS_PER_WEEK - 1
