from __future__ import annotations
from datetime import date
import pytest

from app import create_app
from extensions import db
from models import User
from blueprints.scheduler.errors import CapacityError, ValidationError
from blueprints.scheduler.services import ScheduleService
from client import (
    PROVISIONAL_ID, ProvisionalSlotError, SchedulerSession, ServiceBackend, SessionClosedError, WeekCache,
)

TODAY = date(2030, 1, 8)         # Tuesday
THIS_WEEK = "2030-01-06"
NEXT_WEEK = "2030-01-13"
NEXT_MONDAY = "2030-01-14"


@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        u = User(email="owner@example.com", is_active=True)
        u.set_password("pass")
        db.session.add(u)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def backend(app_ctx):
    owner = db.session.query(User).filter_by(email="owner@example.com").one()
    return ServiceBackend(owner.id, ScheduleService(today=TODAY))


@pytest.fixture()
def session(backend):
    s = SchedulerSession(backend, today=TODAY)
    yield s
    s.close()


class FlakyBackend:
    """Delegates to a real backend; get_week can be switched off."""

    def __init__(self, inner):
        self.inner = inner
        self.reads_fail = False
        self.reads = 0

    def get_week(self, week_start):
        self.reads += 1
        if self.reads_fail:
            raise ConnectionError("backend down")
        return self.inner.get_week(week_start)

    def __getattr__(self, name):
        return getattr(self.inner, name)


# ---------- cache ----------
def test_week_cache_patch_only_touches_loaded_weeks():
    c = WeekCache()
    assert c.patch(NEXT_WEEK, lambda slots: slots + [{"id": "x"}]) is False
    assert c.get(NEXT_WEEK) is None and len(c) == 0

    c.put(date(2030, 1, 13), [{"id": "a"}])
    assert NEXT_WEEK in c
    assert c.patch(NEXT_WEEK, lambda slots: slots + [{"id": "b"}]) is True
    assert [s["id"] for s in c.get(NEXT_WEEK)] == ["a", "b"]

    c.invalidate(NEXT_WEEK)
    assert c.is_stale(NEXT_WEEK) and c.get(NEXT_WEEK) is not None
    c.put(NEXT_WEEK, [])
    assert not c.is_stale(NEXT_WEEK)

    c.clear()
    assert c.weeks() == []


# ---------- create ----------
def test_create_shows_provisional_slot_then_server_slot(session):
    session.load_week(THIS_WEEK)
    session.load_week(NEXT_WEEK)

    m = session.begin_create_rule(1, "09:00", "11:00")
    (prov,) = session.slots(NEXT_WEEK)
    assert prov["scheduleId"] == PROVISIONAL_ID and prov["pending"] is True
    assert prov["date"] == NEXT_MONDAY and prov["startTime"] == "09:00"
    # this week's Monday is already past
    assert session.slots(THIS_WEEK) == []
    assert session.pending == [m]

    rule = m.resolve()
    (slot,) = session.slots(NEXT_WEEK)
    assert slot["scheduleId"] == rule["id"] and "pending" not in slot
    assert slot["id"] == f"{rule['id']}-{NEXT_MONDAY}"
    assert session.pending == []


def test_provisional_slots_cannot_be_edited(session):
    session.load_week(NEXT_WEEK)
    session.begin_create_rule(1, "09:00", "11:00")
    with pytest.raises(ProvisionalSlotError):
        session.begin_update_slot(PROVISIONAL_ID, NEXT_MONDAY, "10:00", "12:00")
    with pytest.raises(ProvisionalSlotError):
        session.delete_slot(PROVISIONAL_ID, NEXT_MONDAY)
    with pytest.raises(ProvisionalSlotError):
        session.delete_rule(PROVISIONAL_ID)


def test_full_day_gets_no_provisional_slot_and_failure_refetches(session):
    session.load_week(NEXT_WEEK)
    session.create_rule(1, "09:00", "10:00")
    session.create_rule(1, "11:00", "12:00")

    m = session.begin_create_rule(1, "13:00", "14:00")
    assert len(session.slots(NEXT_WEEK)) == 2
    with pytest.raises(CapacityError):
        m.resolve()
    assert m.error is not None and m.done
    assert [s["startTime"] for s in session.slots(NEXT_WEEK)] == ["09:00", "11:00"]


def test_create_does_not_patch_unloaded_weeks(session):
    session.create_rule(1, "09:00", "10:00")
    assert session.cache.weeks() == []


# ---------- occurrences ----------
def test_update_is_optimistic_and_confirmed_by_refetch(session):
    rule = session.create_rule(1, "09:00", "11:00")
    session.load_week(NEXT_WEEK)

    m = session.begin_update_slot(rule["id"], NEXT_MONDAY, "10:00", "12:00")
    (slot,) = session.slots(NEXT_WEEK)
    assert (slot["startTime"], slot["endTime"], slot["isException"]) == ("10:00", "12:00", True)
    assert "exceptionId" not in slot

    exc = m.resolve()
    (slot,) = session.slots(NEXT_WEEK)
    assert slot["exceptionId"] == exc["id"] and slot["startTime"] == "10:00"


def test_failed_update_is_replaced_by_server_state(session):
    rule = session.create_rule(1, "09:00", "11:00")
    session.load_week(NEXT_WEEK)

    m = session.begin_update_slot(rule["id"], NEXT_MONDAY, "12:00", "10:00")
    assert session.slots(NEXT_WEEK)[0]["startTime"] == "12:00"
    with pytest.raises(ValidationError):
        m.resolve()
    (slot,) = session.slots(NEXT_WEEK)
    assert (slot["startTime"], slot["isException"]) == ("09:00", False)


def test_delete_slot_and_rule(session):
    rule = session.create_rule(1, "09:00", "11:00")
    session.load_week(NEXT_WEEK)
    session.load_week("2030-01-20")

    session.delete_slot(rule["id"], NEXT_MONDAY)
    assert session.slots(NEXT_WEEK) == []
    assert len(session.slots("2030-01-20")) == 1

    m = session.begin_delete_rule(str(rule["id"]))
    assert session.slots("2030-01-20") == []
    assert m.resolve() == {"success": True}
    assert session.slots("2030-01-20") == []


# ---------- refetch / lifecycle ----------
def test_refetch_failure_marks_weeks_stale(backend):
    flaky = FlakyBackend(backend)
    s = SchedulerSession(flaky, today=TODAY)
    s.load_week(NEXT_WEEK)
    reads = flaky.reads

    flaky.reads_fail = True
    rule = s.create_rule(1, "09:00", "11:00")
    assert rule["dayOfWeek"] == 1
    assert flaky.reads == reads + 1
    assert s.cache.is_stale(NEXT_WEEK)
    # optimistic slot is still visible until the next successful read
    assert s.slots(NEXT_WEEK)[0]["scheduleId"] == PROVISIONAL_ID

    flaky.reads_fail = False
    s.refetch_active()
    assert not s.cache.is_stale(NEXT_WEEK)
    assert s.slots(NEXT_WEEK)[0]["scheduleId"] == rule["id"]


def test_closed_session_rejects_work(session):
    session.load_week(NEXT_WEEK)
    m = session.begin_create_rule(1, "09:00", "11:00")
    session.close()
    assert session.cache.weeks() == [] and session.pending == []
    with pytest.raises(SessionClosedError):
        session.load_week(NEXT_WEEK)
    with pytest.raises(SessionClosedError):
        session.begin_delete_slot(1, NEXT_MONDAY)
    # a call that was already in flight still completes, but nothing is cached
    m.resolve()
    assert session.cache.weeks() == []
