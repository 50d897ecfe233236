from __future__ import annotations
from datetime import date, time
from types import SimpleNamespace
from zoneinfo import ZoneInfoNotFoundError

import pytest

from models import Cancelled, Rescheduled
from blueprints.scheduler.dates import (
    day_of_week, first_occurrence, local_today, next_week, previous_week, week_start_for,
)
from blueprints.scheduler.expander import expand_days, expand_week

SUNDAY = date(2030, 1, 6)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def rule(id, dow, start=(9, 0), end=(11, 0)):
    return SimpleNamespace(id=id, day_of_week=dow, start_time=time(*start), end_time=time(*end))


def exc(id, rule_id, on, override):
    return SimpleNamespace(id=id, rule_id=rule_id, date=on, override=override)


def test_week_helpers():
    assert day_of_week(SUNDAY) == 0 and day_of_week(MONDAY) == 1
    assert week_start_for(date(2030, 1, 10)) == SUNDAY
    assert week_start_for(SUNDAY) == SUNDAY
    assert next_week(SUNDAY) == date(2030, 1, 13)
    assert previous_week(SUNDAY) == date(2029, 12, 30)
    assert first_occurrence(1, TUESDAY) == date(2030, 1, 14)
    assert first_occurrence(2, TUESDAY) == TUESDAY


def test_local_today_uses_named_zone():
    assert isinstance(local_today("UTC"), date)
    with pytest.raises(ZoneInfoNotFoundError):
        local_today("Nowhere/Atlantis")


def test_plain_rule_projected_on_matching_day():
    slots = expand_week([rule(1, 1)], [], SUNDAY, today=SUNDAY)
    assert len(slots) == 1
    s = slots[0]
    assert s.date == MONDAY and s.is_exception is False and s.exception_id is None
    assert s.id == "1-2030-01-07"
    assert s.as_json() == {
        "id": "1-2030-01-07", "scheduleId": 1, "date": "2030-01-07",
        "startTime": "09:00", "endTime": "11:00", "isException": False,
    }


def test_dates_before_today_are_omitted():
    days = expand_days([rule(1, 1), rule(2, 2)], [], SUNDAY, today=TUESDAY)
    assert [d.date for d in days][0] == TUESDAY
    assert len(days) == 5
    slots = [s for d in days for s in d.slots]
    assert [s.rule_id for s in slots] == [2]


def test_rescheduled_exception_replaces_times():
    e = exc(7, 1, MONDAY, Rescheduled(time(10, 0), time(12, 0)))
    (s,) = expand_week([rule(1, 1)], [e], SUNDAY, today=SUNDAY)
    assert s.is_exception is True and s.exception_id == 7
    assert s.as_json()["startTime"] == "10:00" and s.as_json()["exceptionId"] == 7


def test_cancelled_exception_suppresses_only_that_rule():
    e = exc(8, 1, MONDAY, Cancelled())
    slots = expand_week([rule(1, 1), rule(2, 1, (13, 0), (14, 0))], [e], SUNDAY, today=SUNDAY)
    assert [s.rule_id for s in slots] == [2]


def test_exception_on_other_date_is_ignored():
    e = exc(9, 1, date(2030, 1, 14), Cancelled())
    slots = expand_week([rule(1, 1)], [e], SUNDAY, today=SUNDAY)
    assert len(slots) == 1 and not slots[0].is_exception


def test_order_by_date_then_rule_order():
    rules = [rule(5, 3), rule(2, 1), rule(9, 1, (7, 0), (8, 0))]
    slots = expand_week(rules, [], SUNDAY, today=SUNDAY)
    assert [(s.date.day, s.rule_id) for s in slots] == [(7, 2), (7, 9), (9, 5)]


def test_window_need_not_start_on_sunday():
    days = expand_days([rule(1, 0)], [], date(2030, 1, 9), today=SUNDAY)
    assert len(days) == 7
    assert [s.date for d in days for s in d.slots] == [date(2030, 1, 13)]
    assert days[0].as_json()["dayName"] == "Wednesday"


def test_reschedule_variant_rejects_inverted_range():
    with pytest.raises(ValueError):
        Rescheduled(time(10, 0), time(10, 0))
