# blueprints/scheduler/routes.py
from __future__ import annotations
import logging
from datetime import timedelta

from flask import jsonify, request
from flask_login import current_user, login_required
from pydantic import ValidationError as PydanticValidationError

from . import api_bp
from .dates import next_week, previous_week, week_start_for
from .errors import ScheduleError
from .schemas import RuleIn, SlotTimesIn
from .services import ScheduleService
from .validators import parse_date

log = logging.getLogger(__name__)


def _service() -> ScheduleService:
    return ScheduleService()


def _owner_id() -> int:
    return int(current_user.id)


def _payload_error(ve: PydanticValidationError):
    errs = ve.errors(include_url=False, include_context=False)
    return jsonify({"error": "validation_error", "detail": errs}), 422


@api_bp.errorhandler(ScheduleError)
def _schedule_error(e: ScheduleError):
    log.info("request rejected", extra={"event": "schedule_rejected", "code": e.code,
                                         "path": request.path, "method": request.method})
    return jsonify(e.as_json()), e.http_status


# ---------- rules ----------
@api_bp.get("/scheduler/rules")
@login_required
def list_rules():
    items = _service().list_rules(_owner_id())
    return jsonify({"items": [r.as_json() for r in items]})


@api_bp.post("/scheduler/rules")
@login_required
def create_rule():
    try:
        data = RuleIn.model_validate(request.get_json(silent=True) or {})
    except PydanticValidationError as ve:
        return _payload_error(ve)
    rule = _service().create_rule(_owner_id(), data.day_of_week, data.start_time, data.end_time)
    return jsonify(rule.as_json()), 201


@api_bp.delete("/scheduler/rules/<rule_id>")
@login_required
def delete_rule(rule_id: str):
    return jsonify(_service().delete_rule(_owner_id(), rule_id))


# ---------- week ----------
@api_bp.get("/scheduler/week")
@login_required
def get_week():
    svc = _service()
    raw = request.args.get("startDate")
    start = parse_date(raw, "startDate") if raw else week_start_for(svc.today())
    days = svc.get_week_days(_owner_id(), start)
    return jsonify({
        "period": {
            "start": start.isoformat(),
            "end": (start + timedelta(days=6)).isoformat(),
            "previous": previous_week(start).isoformat(),
            "next": next_week(start).isoformat(),
        },
        "slots": [s.as_json() for d in days for s in d.slots],
        "days": [d.as_json() for d in days],
    })


# ---------- single occurrences ----------
@api_bp.put("/scheduler/rules/<rule_id>/occurrences/<on_date>")
@login_required
def update_occurrence(rule_id: str, on_date: str):
    try:
        data = SlotTimesIn.model_validate(request.get_json(silent=True) or {})
    except PydanticValidationError as ve:
        return _payload_error(ve)
    exc = _service().update_slot(_owner_id(), rule_id, on_date, data.start_time, data.end_time)
    return jsonify(exc.as_json())


@api_bp.delete("/scheduler/rules/<rule_id>/occurrences/<on_date>")
@login_required
def delete_occurrence(rule_id: str, on_date: str):
    exc = _service().delete_slot_occurrence(_owner_id(), rule_id, on_date)
    return jsonify(exc.as_json())

