from .backends import SchedulerBackend, ServiceBackend
from .cache import WeekCache, week_key
from .session import (
    PROVISIONAL_ID, PendingMutation, ProvisionalSlotError, SchedulerSession, SessionClosedError,
)

__all__ = [
    "SchedulerBackend", "ServiceBackend",
    "WeekCache", "week_key",
    "PROVISIONAL_ID", "PendingMutation", "ProvisionalSlotError", "SchedulerSession", "SessionClosedError",
]
