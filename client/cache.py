# client/cache.py
from __future__ import annotations
import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Union

log = logging.getLogger(__name__)

Slot = dict
WeekKey = Union[str, date]


def week_key(week: WeekKey) -> str:
    """Cache key for a week window: its start date as YYYY-MM-DD."""
    return week.isoformat() if isinstance(week, date) else str(week)


class WeekCache:
    """Expanded slots per week window, keyed by the window's start date.

    Entries are created only by ``put`` (a server response); ``patch`` never
    creates an entry for a week that has not been loaded.
    """

    def __init__(self):
        self._entries: Dict[str, List[Slot]] = {}
        self._stale: set[str] = set()

    def __contains__(self, week: WeekKey) -> bool:
        return week_key(week) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def weeks(self) -> List[str]:
        # insertion order == order the weeks were first loaded
        return list(self._entries)

    def get(self, week: WeekKey) -> Optional[List[Slot]]:
        slots = self._entries.get(week_key(week))
        return None if slots is None else list(slots)

    def put(self, week: WeekKey, slots: List[Slot]) -> None:
        key = week_key(week)
        self._entries[key] = [dict(s) for s in slots]
        self._stale.discard(key)

    def patch(self, week: WeekKey, fn: Callable[[List[Slot]], List[Slot]]) -> bool:
        key = week_key(week)
        prev = self._entries.get(key)
        if prev is None:
            return False
        self._entries[key] = fn([dict(s) for s in prev])
        return True

    def invalidate(self, week: WeekKey | None = None) -> None:
        """Mark one week (or all) stale; data stays readable until the next put."""
        if week is None:
            self._stale.update(self._entries)
        elif week_key(week) in self._entries:
            self._stale.add(week_key(week))

    def is_stale(self, week: WeekKey) -> bool:
        return week_key(week) in self._stale

    def clear(self) -> None:
        self._entries.clear()
        self._stale.clear()
        log.debug("week cache cleared")
