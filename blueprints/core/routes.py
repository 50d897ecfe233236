from __future__ import annotations
import json, logging
from datetime import UTC, datetime

from flask import g, jsonify, request
from flask_wtf.csrf import CSRFError, generate_csrf
from werkzeug.wrappers.response import Response

from extensions import csrf

from . import bp, api_bp

LOG_FIELDS = ("event", "path", "method", "status", "duration_ms", "owner_id", "rule_id", "date", "code")


def _now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": _now().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in LOG_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, ensure_ascii=False)


def _setup_structured_logging(app):
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in app.logger.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        app.logger.addHandler(handler)
        app.logger.setLevel(logging.INFO)
        # module loggers (blueprints.*) go through the same handler
        pkg_logger = logging.getLogger("blueprints")
        pkg_logger.addHandler(handler)
        pkg_logger.setLevel(logging.INFO)


@api_bp.get("/csrf")
@csrf.exempt
def get_csrf():
    token = generate_csrf()
    resp = jsonify({"csrf": token})
    resp.set_cookie("csrf_token", token, samesite="Lax")
    return resp


@bp.app_errorhandler(CSRFError)
def _csrf_error(e: CSRFError):
    return jsonify({"error": "csrf_failed", "detail": e.description}), 400


@bp.before_app_request
def _start_timer():
    g._req_start = _now()


@bp.after_app_request
def _log_request(response: Response):
    try:
        duration_ms = int((_now() - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    logging.getLogger("blueprints.core").info("request handled", extra=extra)
    return response


@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)


@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": _now().isoformat(timespec="seconds") + "Z",
    })
