from __future__ import annotations


class ScheduleError(Exception):
    """Base for per-call failures of the scheduler; never fatal to the process."""
    code = "schedule_error"
    http_status = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def as_json(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class ValidationError(ScheduleError):
    code = "validation_error"
    http_status = 400


class CapacityError(ScheduleError):
    code = "capacity_exceeded"
    http_status = 409


class NotFoundError(ScheduleError):
    # existence is checked jointly with ownership, so other owners' rows look missing too
    code = "not_found"
    http_status = 404
