from __future__ import annotations
import re
from datetime import date, datetime, time

from .errors import ValidationError

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_time(value, field: str = "time") -> time:
    """'H:MM' / 'HH:MM' (24h) -> time."""
    if not isinstance(value, str) or not TIME_RE.fullmatch(value):
        raise ValidationError(f"{field} must be in HH:MM 24-hour format")
    h, m = value.split(":")
    return time(int(h), int(m))


def parse_date(value, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_RE.fullmatch(value):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid calendar date") from None


def parse_day_of_week(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise ValidationError("dayOfWeek must be an integer between 0 (Sunday) and 6 (Saturday)")
    return value


def ensure_time_range(start_time: time, end_time: time) -> None:
    # minute-of-day comparison; equal times are rejected too
    if end_time.hour * 60 + end_time.minute <= start_time.hour * 60 + start_time.minute:
        raise ValidationError("End time must be after start time")

