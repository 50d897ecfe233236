from __future__ import annotations
import json
import logging

import pytest

from app import create_app
from extensions import db
from models import User
from blueprints.core.routes import JSONFormatter


@pytest.fixture()
def client():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        u = User(email="demo@example.com", is_active=True)
        u.set_password("pass")
        db.session.add(u)
        db.session.add(User(email="off@example.com", is_active=False, password_hash=u.password_hash))
        db.session.commit()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


def _token(c):
    return c.get("/api/v1/csrf").get_json()["csrf"]


def _login(c, email, password):
    return c.post("/api/v1/auth/login", json={"email": email, "password": password},
                  headers={"X-CSRFToken": _token(c)})


def test_health_ok(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "ok"
    assert data["ts"].endswith("Z")


def test_csrf_token_endpoint(client):
    rv = client.get("/api/v1/csrf")
    assert rv.status_code == 200
    assert rv.get_json()["csrf"]
    assert "csrf_token=" in rv.headers.get("Set-Cookie", "")


def test_login_requires_csrf(client):
    rv = client.post("/api/v1/auth/login", json={"email": "demo@example.com", "password": "pass"})
    assert rv.status_code == 400
    assert rv.get_json()["error"] == "csrf_failed"


def test_login_me_logout(client):
    assert client.get("/api/v1/auth/me").status_code == 401

    rv = _login(client, "Demo@Example.com ", "pass")
    assert rv.status_code == 200
    assert rv.get_json()["user"]["email"] == "demo@example.com"

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200 and me.get_json()["user"]["email"] == "demo@example.com"

    rv = client.post("/api/v1/auth/logout", headers={"X-CSRFToken": _token(client)})
    assert rv.status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 401


@pytest.mark.parametrize("email,password,status,error", [
    ("", "pass", 400, "missing_credentials"),
    ("demo@example.com", "nope", 401, "invalid_credentials"),
    ("ghost@example.com", "pass", 401, "invalid_credentials"),
    ("off@example.com", "pass", 403, "inactive"),
])
def test_login_failures(client, email, password, status, error):
    rv = _login(client, email, password)
    assert rv.status_code == status
    assert rv.get_json()["error"] == error


def test_json_formatter_keeps_known_extras():
    rec = logging.LogRecord("blueprints.scheduler", logging.INFO, __file__, 1, "rule created", None, None)
    rec.event = "rule_created"
    rec.rule_id = 7
    rec.unrelated = "dropped"
    out = json.loads(JSONFormatter().format(rec))
    assert out["msg"] == "rule created" and out["level"] == "INFO"
    assert out["event"] == "rule_created" and out["rule_id"] == 7
    assert "unrelated" not in out
