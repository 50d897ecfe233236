from __future__ import annotations
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_of_week(d: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return d.isoweekday() % 7


def week_start_for(d: date) -> date:
    # week starts on Sunday
    return d - timedelta(days=day_of_week(d))


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def next_week(week_start: date) -> date:
    return add_days(week_start, 7)


def previous_week(week_start: date) -> date:
    return add_days(week_start, -7)


def week_dates(week_start: date) -> list[date]:
    return [add_days(week_start, i) for i in range(7)]


def first_occurrence(dow: int, today: date) -> date:
    """First date on/after ``today`` falling on ``dow``."""
    return add_days(today, (dow - day_of_week(today)) % 7)


def local_today(tz_name: str | None = None) -> date:
    """Today's date at local midnight, in ``tz_name`` or the server zone."""
    if not tz_name:
        return date.today()
    return datetime.now(ZoneInfo(tz_name)).date()


def format_time(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"

