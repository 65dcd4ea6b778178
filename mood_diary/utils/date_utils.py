"""
Calendar-date helpers.

A "window" is every play attributed to one calendar date in the configured
timezone; dates are exchanged as YYYY-MM-DD strings.
"""

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

from mood_diary.core.errors import InvalidDateError

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_local_date_string(moment: datetime, tz: tzinfo) -> str:
    """Converts an aware datetime to its calendar date in `tz`."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).strftime(DATE_FORMAT)


def parse_date(value: Optional[str]) -> date:
    """
    Parses a YYYY-MM-DD string.

    Raises:
        InvalidDateError: If the value is missing or malformed.
    """
    if not value or not DATE_PATTERN.match(value):
        raise InvalidDateError(str(value))
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateError(value) from None


def hours_since(moment: datetime, now: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds() / 3600.0


def format_time_since(moment: datetime, now: datetime) -> str:
    """Human-readable elapsed time, e.g. "2 hours ago"."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    elapsed_seconds = (now - moment).total_seconds()
    hours = int(elapsed_seconds // 3600)
    minutes = int(elapsed_seconds // 60)

    if hours >= 1:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes >= 1:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"
