# blueprints/auth/routes.py
from __future__ import annotations
import logging
from typing import Optional

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import select

from extensions import db, login_manager
from models import User

api_bp = Blueprint("auth_api", __name__)

log = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401


def _user_json(user: User) -> dict:
    return {"id": user.id, "email": user.email}


@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    user: Optional[User] = db.session.scalars(select(User).where(User.email == email)).first()
    if not user or not user.password_hash or not user.check_password(password):
        log.info("login failed", extra={"event": "login_failed"})
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    login_user(user, remember=True)
    return jsonify({"ok": True, "user": _user_json(user)})


@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})


@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"ok": True, "user": _user_json(current_user)})
