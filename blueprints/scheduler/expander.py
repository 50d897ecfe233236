# blueprints/scheduler/expander.py
"""Materializes weekly recurrence rules into per-date slots.

Everything here is pure: callers load rules and exceptions, pass them in
together with the window start and "today", and get plain values back.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from models import Cancelled, Rescheduled, SlotOverride
from .dates import DAY_NAMES, day_of_week, format_time, week_dates


class RuleLike(Protocol):
    id: int
    day_of_week: int
    start_time: time
    end_time: time


class ExceptionLike(Protocol):
    id: int
    rule_id: int
    date: date

    @property
    def override(self) -> SlotOverride: ...


@dataclass(frozen=True)
class ExpandedSlot:
    rule_id: int
    date: date
    start_time: time
    end_time: time
    is_exception: bool = False
    exception_id: Optional[int] = None

    @property
    def id(self) -> str:
        # stable reconciliation key for clients
        return f"{self.rule_id}-{self.date.isoformat()}"

    def as_json(self) -> dict:
        out = {
            "id": self.id,
            "scheduleId": self.rule_id,
            "date": self.date.isoformat(),
            "startTime": format_time(self.start_time),
            "endTime": format_time(self.end_time),
            "isException": self.is_exception,
        }
        if self.exception_id is not None:
            out["exceptionId"] = self.exception_id
        return out


@dataclass
class WeekDay:
    date: date
    slots: List[ExpandedSlot] = field(default_factory=list)

    @property
    def day_number(self) -> int:
        return day_of_week(self.date)

    def as_json(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "dayName": DAY_NAMES[self.day_number],
            "dayNumber": self.day_number,
            "slots": [s.as_json() for s in self.slots],
        }


def _index_exceptions(exceptions: Iterable[ExceptionLike]) -> Dict[Tuple[int, date], ExceptionLike]:
    return {(e.rule_id, e.date): e for e in exceptions}


def _slot_for(rule: RuleLike, day: date, exc: Optional[ExceptionLike]) -> Optional[ExpandedSlot]:
    if exc is None:
        return ExpandedSlot(rule_id=rule.id, date=day,
                            start_time=rule.start_time, end_time=rule.end_time)
    override = exc.override
    if isinstance(override, Cancelled):
        return None
    if isinstance(override, Rescheduled):
        return ExpandedSlot(rule_id=rule.id, date=day,
                            start_time=override.start_time, end_time=override.end_time,
                            is_exception=True, exception_id=exc.id)
    raise TypeError(f"unsupported override: {override!r}")


def expand_days(rules: Iterable[RuleLike], exceptions: Iterable[ExceptionLike],
                week_start: date, today: date) -> List[WeekDay]:
    """Per-date buckets for the 7 dates starting at ``week_start``.

    Dates strictly before ``today`` are omitted. Within a date, slots keep
    the order of ``rules`` (callers pass them in insertion order).
    """
    rules = list(rules)
    by_key = _index_exceptions(exceptions)
    days: List[WeekDay] = []
    for day in week_dates(week_start):
        if day < today:
            continue
        bucket = WeekDay(date=day)
        dow = day_of_week(day)
        for rule in rules:
            if rule.day_of_week != dow:
                continue
            slot = _slot_for(rule, day, by_key.get((rule.id, day)))
            if slot is not None:
                bucket.slots.append(slot)
        days.append(bucket)
    return days


def expand_week(rules: Iterable[RuleLike], exceptions: Iterable[ExceptionLike],
                week_start: date, today: date) -> List[ExpandedSlot]:
    return [s for day in expand_days(rules, exceptions, week_start, today) for s in day.slots]
