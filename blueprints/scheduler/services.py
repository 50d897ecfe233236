# blueprints/scheduler/services.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, List, Optional, Union

from flask import current_app

from extensions import db
from models import Cancelled, RecurrenceRule, Rescheduled, ScheduleException
from .dates import format_time, local_today
from .errors import CapacityError, NotFoundError
from .expander import ExpandedSlot, WeekDay, expand_days, expand_week
from .store import ExceptionStore, RecurrenceStore
from .validators import (
    ensure_time_range, parse_date, parse_day_of_week, parse_time,
)

log = logging.getLogger(__name__)

DEFAULT_MAX_SLOTS_PER_DAY = 2


@dataclass
class RuleOut:
    id: int
    owner_id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool

    @classmethod
    def from_row(cls, r: RecurrenceRule) -> "RuleOut":
        return cls(id=r.id, owner_id=r.owner_id, day_of_week=r.day_of_week,
                   start_time=format_time(r.start_time), end_time=format_time(r.end_time),
                   is_active=bool(r.is_active))

    def as_json(self) -> dict:
        return {
            "id": self.id,
            "userId": self.owner_id,
            "dayOfWeek": self.day_of_week,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "isActive": self.is_active,
        }


@dataclass
class ExceptionOut:
    id: int
    schedule_id: int
    date: str
    start_time: Optional[str]
    end_time: Optional[str]
    is_deleted: bool

    @classmethod
    def from_row(cls, e: ScheduleException) -> "ExceptionOut":
        override = e.override
        times = (None, None)
        if isinstance(override, Rescheduled):
            times = (format_time(override.start_time), format_time(override.end_time))
        return cls(id=e.id, schedule_id=e.rule_id, date=e.date.isoformat(),
                   start_time=times[0], end_time=times[1],
                   is_deleted=isinstance(override, Cancelled))

    def as_json(self) -> dict:
        return {
            "id": self.id,
            "scheduleId": self.schedule_id,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "isDeleted": self.is_deleted,
        }


def _coerce_rule_id(rule_id) -> int:
    # ids arrive as ints from Python callers and as strings from URLs/clients
    if isinstance(rule_id, bool):
        raise NotFoundError("Schedule not found")
    try:
        return int(rule_id)
    except (TypeError, ValueError):
        raise NotFoundError("Schedule not found") from None


class ScheduleService:
    """Recurring weekly slots with per-date exceptions, scoped to one owner per call.

    Validation fails fast in the order: input format, then capacity/ownership,
    then time ordering.
    """

    def __init__(self, rules: RecurrenceStore | None = None, exceptions: ExceptionStore | None = None,
                 *, max_per_day: int | None = None,
                 today: Union[date, Callable[[], date], None] = None):
        self.rules = rules or RecurrenceStore()
        self.exceptions = exceptions or ExceptionStore()
        self._max_per_day = max_per_day
        self._today = today

    @property
    def max_per_day(self) -> int:
        if self._max_per_day is not None:
            return self._max_per_day
        return int(current_app.config.get("SCHEDULER_MAX_SLOTS_PER_DAY", DEFAULT_MAX_SLOTS_PER_DAY))

    def today(self) -> date:
        if self._today is None:
            return local_today(current_app.config.get("SCHEDULER_TIMEZONE"))
        return self._today() if callable(self._today) else self._today

    def _owned_active_rule(self, owner_id: int, rule_id) -> RecurrenceRule:
        rule = self.rules.find_by_id_and_owner(_coerce_rule_id(rule_id), owner_id)
        if rule is None or not rule.is_active:
            raise NotFoundError("Schedule not found")
        return rule

    # ---------- rules ----------
    def create_rule(self, owner_id: int, day_of_week, start_time, end_time) -> RuleOut:
        dow = parse_day_of_week(day_of_week)
        start = parse_time(start_time, "startTime")
        end = parse_time(end_time, "endTime")

        cap = self.max_per_day
        if len(self.rules.find_active_by_owner_and_day(owner_id, dow)) >= cap:
            raise CapacityError(f"Maximum {cap} slots allowed per day")
        ensure_time_range(start, end)

        rule = self.rules.insert_within_capacity(owner_id, dow, start, end, cap)
        if rule is None:
            # lost a race against a concurrent create for the same day
            db.session.rollback()
            raise CapacityError(f"Maximum {cap} slots allowed per day")
        db.session.commit()
        log.info("rule created", extra={"event": "rule_created", "owner_id": owner_id, "rule_id": rule.id})
        return RuleOut.from_row(rule)

    def list_rules(self, owner_id: int) -> List[RuleOut]:
        return [RuleOut.from_row(r) for r in self.rules.find_active_by_owner(owner_id)]

    def delete_rule(self, owner_id: int, rule_id) -> dict:
        rule = self.rules.find_by_id_and_owner(_coerce_rule_id(rule_id), owner_id)
        if rule is None:
            raise NotFoundError("Schedule not found")
        if rule.is_active:
            self.rules.deactivate(rule)
            db.session.commit()
            log.info("rule deactivated", extra={"event": "rule_deactivated", "owner_id": owner_id, "rule_id": rule.id})
        return {"success": True}

    # ---------- week window ----------
    def _load_window(self, owner_id: int, week_start):
        start = parse_date(week_start, "startDate")
        end = start + timedelta(days=6)
        rules = self.rules.find_active_by_owner(owner_id)
        exceptions = self.exceptions.find_for_rules_in_window((r.id for r in rules), start, end)
        return start, rules, exceptions

    def get_week(self, owner_id: int, week_start) -> List[ExpandedSlot]:
        start, rules, exceptions = self._load_window(owner_id, week_start)
        return expand_week(rules, exceptions, start, self.today())

    def get_week_days(self, owner_id: int, week_start) -> List[WeekDay]:
        start, rules, exceptions = self._load_window(owner_id, week_start)
        return expand_days(rules, exceptions, start, self.today())

    # ---------- single occurrences ----------
    def update_slot(self, owner_id: int, rule_id, on_date, start_time, end_time) -> ExceptionOut:
        day = parse_date(on_date)
        start = parse_time(start_time, "startTime")
        end = parse_time(end_time, "endTime")
        rule = self._owned_active_rule(owner_id, rule_id)
        ensure_time_range(start, end)

        exc = self.exceptions.upsert(rule.id, day, Rescheduled(start, end))
        db.session.commit()
        log.info("occurrence rescheduled",
                 extra={"event": "occurrence_rescheduled", "owner_id": owner_id, "rule_id": rule.id,
                        "date": day.isoformat()})
        return ExceptionOut.from_row(exc)

    def delete_slot_occurrence(self, owner_id: int, rule_id, on_date) -> ExceptionOut:
        day = parse_date(on_date)
        rule = self._owned_active_rule(owner_id, rule_id)

        exc = self.exceptions.upsert(rule.id, day, Cancelled())
        db.session.commit()
        log.info("occurrence cancelled",
                 extra={"event": "occurrence_cancelled", "owner_id": owner_id, "rule_id": rule.id,
                        "date": day.isoformat()})
        return ExceptionOut.from_row(exc)

