# client/backends.py
from __future__ import annotations
from typing import List, Protocol

from blueprints.scheduler.services import ScheduleService


class SchedulerBackend(Protocol):
    """What a session needs from the server side; payloads are JSON-shaped dicts."""

    def create_rule(self, day_of_week: int, start_time: str, end_time: str) -> dict: ...

    def get_week(self, week_start: str) -> List[dict]: ...

    def update_slot(self, rule_id, on_date: str, start_time: str, end_time: str) -> dict: ...

    def delete_slot(self, rule_id, on_date: str) -> dict: ...

    def delete_rule(self, rule_id) -> dict: ...


class ServiceBackend:
    """In-process backend: calls ScheduleService for one owner (needs an app context)."""

    def __init__(self, owner_id: int, service: ScheduleService | None = None):
        self.owner_id = owner_id
        self.service = service or ScheduleService()

    def create_rule(self, day_of_week, start_time, end_time):
        return self.service.create_rule(self.owner_id, day_of_week, start_time, end_time).as_json()

    def get_week(self, week_start):
        return [s.as_json() for s in self.service.get_week(self.owner_id, week_start)]

    def update_slot(self, rule_id, on_date, start_time, end_time):
        return self.service.update_slot(self.owner_id, rule_id, on_date, start_time, end_time).as_json()

    def delete_slot(self, rule_id, on_date):
        return self.service.delete_slot_occurrence(self.owner_id, rule_id, on_date).as_json()

    def delete_rule(self, rule_id):
        return self.service.delete_rule(self.owner_id, rule_id)
