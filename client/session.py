# client/session.py
"""Optimistic client-side view of a user's weekly schedule.

A ``SchedulerSession`` is created per login and closed on logout. Every
mutation first patches the cached weeks, then calls the backend, then
refetches every loaded week whatever the outcome. A failed call is never
undone by hand: the refetch overwrites the optimistic state.
"""
from __future__ import annotations
import itertools
import logging
from datetime import date
from typing import Callable, List, Optional, Union

from blueprints.scheduler.dates import add_days, day_of_week, first_occurrence, local_today
from .backends import SchedulerBackend
from .cache import Slot, WeekCache, WeekKey, week_key

log = logging.getLogger(__name__)

PROVISIONAL_ID = "provisional"
DEFAULT_MAX_PER_DAY = 2


class ProvisionalSlotError(Exception):
    """Raised when a not-yet-confirmed slot is edited or deleted."""


class SessionClosedError(RuntimeError):
    pass


def _same_rule(slot: Slot, rule_id) -> bool:
    return str(slot.get("scheduleId")) == str(rule_id)


def _date_in_window(week_start: date, dow: int) -> date:
    return add_days(week_start, (dow - day_of_week(week_start)) % 7)


class PendingMutation:
    """A mutation whose optimistic patch is applied but whose call has not run yet."""

    def __init__(self, session: "SchedulerSession", name: str, call: Callable[[], dict]):
        self._session = session
        self._call = call
        self.name = name
        self.done = False
        self.result: Optional[dict] = None
        self.error: Optional[BaseException] = None

    def resolve(self) -> dict:
        if self.done:
            raise RuntimeError(f"{self.name} already resolved")
        self.done = True
        try:
            self.result = self._call()
        except Exception as e:
            self.error = e
            log.info("mutation failed", extra={"event": "mutation_failed", "code": getattr(e, "code", None)})
            raise
        finally:
            self._session._settle(self)
        return self.result


class SchedulerSession:
    def __init__(self, backend: SchedulerBackend, *,
                 today: Union[date, Callable[[], date], None] = None,
                 max_per_day: int = DEFAULT_MAX_PER_DAY):
        self.backend = backend
        self.cache = WeekCache()
        self.max_per_day = max_per_day
        self._today = today
        self._seq = itertools.count(1)
        self._pending: list[PendingMutation] = []
        self._closed = False

    # ---------- lifecycle ----------
    def close(self) -> None:
        self.cache.clear()
        self._pending.clear()
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("scheduler session is closed")

    def today(self) -> date:
        if self._today is None:
            return local_today()
        return self._today() if callable(self._today) else self._today

    @property
    def pending(self) -> List[PendingMutation]:
        return list(self._pending)

    # ---------- reads ----------
    def load_week(self, week: WeekKey) -> List[Slot]:
        self._ensure_open()
        key = week_key(week)
        self.cache.put(key, self.backend.get_week(key))
        return self.cache.get(key)

    def slots(self, week: WeekKey) -> Optional[List[Slot]]:
        return self.cache.get(week)

    def refetch_active(self) -> None:
        for key in self.cache.weeks():
            try:
                self.cache.put(key, self.backend.get_week(key))
            except Exception:
                log.warning("week refetch failed", extra={"event": "refetch_failed", "date": key}, exc_info=True)
                self.cache.invalidate(key)

    # ---------- mutations ----------
    def _begin(self, name: str, call: Callable[[], dict]) -> PendingMutation:
        m = PendingMutation(self, name, call)
        self._pending.append(m)
        return m

    def _settle(self, m: PendingMutation) -> None:
        if m in self._pending:
            self._pending.remove(m)
        if not self._closed:
            self.refetch_active()

    def begin_create_rule(self, dow: int, start_time: str, end_time: str) -> PendingMutation:
        self._ensure_open()
        first = first_occurrence(dow, self.today())
        tag = f"{PROVISIONAL_ID}-{next(self._seq)}"

        for key in self.cache.weeks():
            day = _date_in_window(date.fromisoformat(key), dow)
            if day < first:
                continue
            iso = day.isoformat()

            def add(slots: List[Slot], iso=iso) -> List[Slot]:
                # UX guard only; the server decides capacity
                if sum(1 for s in slots if s.get("date") == iso) >= self.max_per_day:
                    return slots
                return slots + [{
                    "id": f"{tag}-{iso}",
                    "scheduleId": PROVISIONAL_ID,
                    "date": iso,
                    "startTime": start_time,
                    "endTime": end_time,
                    "isException": False,
                    "pending": True,
                }]

            self.cache.patch(key, add)

        return self._begin("create_rule", lambda: self.backend.create_rule(dow, start_time, end_time))

    def _guard(self, rule_id) -> None:
        self._ensure_open()
        if str(rule_id) == PROVISIONAL_ID:
            raise ProvisionalSlotError("Please wait for the slot to finish creating")

    def begin_update_slot(self, rule_id, on_date: str, start_time: str, end_time: str) -> PendingMutation:
        self._guard(rule_id)

        def move(slots: List[Slot]) -> List[Slot]:
            out = []
            for s in slots:
                if s.get("date") == on_date and _same_rule(s, rule_id):
                    s = {**s, "startTime": start_time, "endTime": end_time, "isException": True}
                out.append(s)
            return out

        for key in self.cache.weeks():
            self.cache.patch(key, move)
        return self._begin("update_slot",
                           lambda: self.backend.update_slot(rule_id, on_date, start_time, end_time))

    def begin_delete_slot(self, rule_id, on_date: str) -> PendingMutation:
        self._guard(rule_id)
        for key in self.cache.weeks():
            self.cache.patch(key, lambda slots: [
                s for s in slots if not (s.get("date") == on_date and _same_rule(s, rule_id))
            ])
        return self._begin("delete_slot", lambda: self.backend.delete_slot(rule_id, on_date))

    def begin_delete_rule(self, rule_id) -> PendingMutation:
        self._guard(rule_id)
        for key in self.cache.weeks():
            self.cache.patch(key, lambda slots: [s for s in slots if not _same_rule(s, rule_id)])
        return self._begin("delete_rule", lambda: self.backend.delete_rule(rule_id))

    def create_rule(self, dow: int, start_time: str, end_time: str) -> dict:
        return self.begin_create_rule(dow, start_time, end_time).resolve()

    def update_slot(self, rule_id, on_date: str, start_time: str, end_time: str) -> dict:
        return self.begin_update_slot(rule_id, on_date, start_time, end_time).resolve()

    def delete_slot(self, rule_id, on_date: str) -> dict:
        return self.begin_delete_slot(rule_id, on_date).resolve()

    def delete_rule(self, rule_id) -> dict:
        return self.begin_delete_rule(rule_id).resolve()
