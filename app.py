from __future__ import annotations
import logging
import os
from importlib import import_module
from flask import Flask
from sqlalchemy import inspect, select

from config import config_map
from extensions import db, migrate, login_manager, csrf

log = logging.getLogger(__name__)

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # users table may not exist yet (before alembic upgrade etc.)
        if not inspect(db.engine).has_table("users"):
            return

        from models import User  # local import to avoid cycles
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            if db.session.scalars(select(User).where(User.email == u["email"])).first():
                continue
            user = User(email=u["email"], is_active=True)
            user.set_password(u["password"])
            db.session.add(user)
            created += 1
        if created:
            db.session.commit()
            log.info("seeded %d default user(s)", created)

def register_blueprints(app: Flask) -> None:
    # core routes must be imported before taking bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.scheduler import api_bp as scheduler_api_bp

    # core without prefix -> '/health' at the root
    app.register_blueprint(core_bp)
    app.register_blueprint(core_api_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(scheduler_api_bp, url_prefix="/api/v1")

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # pytest always sets PYTEST_CURRENT_TEST: keep every test on its own in-memory DB
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {"connect_args": {"check_same_thread": False}})
    app.config.setdefault("WTF_CSRF_TIME_LIMIT", None)
    app.config.setdefault("WTF_CSRF_HEADERS", ["X-CSRFToken", "X-CSRF-Token"])

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    register_blueprints(app)
    _seed_from_config(app)
    return app
