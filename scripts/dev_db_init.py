# scripts/dev_db_init.py
"""
Idempotent dev database setup.
Usage:
  python scripts/dev_db_init.py            # create tables, demo user and demo rules if missing
  python scripts/dev_db_init.py --reset    # drop everything first
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models import User  # noqa: E402
from blueprints.scheduler.errors import ScheduleError  # noqa: E402
from blueprints.scheduler.services import ScheduleService  # noqa: E402

DEMO_EMAIL = "demo@example.com"
DEMO_RULES = [
    (1, "09:00", "11:00"),   # Monday
    (1, "14:00", "15:30"),
    (3, "10:00", "12:00"),   # Wednesday
    (5, "16:00", "17:00"),   # Friday
]

def seed_minimal() -> None:
    user = db.session.scalars(select(User).where(User.email == DEMO_EMAIL)).first()
    if not user:
        user = User(email=DEMO_EMAIL, is_active=True)
        user.set_password("pass")
        db.session.add(user)
        db.session.commit()

    svc = ScheduleService()
    if svc.list_rules(user.id):
        return
    for dow, start, end in DEMO_RULES:
        try:
            svc.create_rule(user.id, dow, start, end)
        except ScheduleError as e:
            print(f"skip rule {dow} {start}-{end}: {e.detail}")

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Create and seed the dev database")
    ap.add_argument("--reset", action="store_true", help="drop all tables first")
    args = ap.parse_args(argv)

    app = create_app("dev")
    with app.app_context():
        if args.reset:
            db.drop_all()
        db.create_all()
        seed_minimal()
    print("DB initialized and seeded")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
