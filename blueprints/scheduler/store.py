# blueprints/scheduler/store.py
from __future__ import annotations
from datetime import UTC, date, datetime, time
from typing import Iterable, List, Optional

from sqlalchemy import Boolean, DateTime, Integer, Time, func, insert, literal, select
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import RecurrenceRule, ScheduleException, SlotOverride


class RecurrenceStore:
    """Recurrence rules, always read and written through their owner."""

    def _active(self, owner_id: int):
        return select(RecurrenceRule).where(
            RecurrenceRule.owner_id == owner_id,
            RecurrenceRule.is_active.is_(True),
        )

    def find_active_by_owner_and_day(self, owner_id: int, day_of_week: int) -> List[RecurrenceRule]:
        stmt = self._active(owner_id).where(RecurrenceRule.day_of_week == day_of_week)
        return list(db.session.scalars(stmt.order_by(RecurrenceRule.id)))

    def find_active_by_owner(self, owner_id: int) -> List[RecurrenceRule]:
        # id order == insertion order
        return list(db.session.scalars(self._active(owner_id).order_by(RecurrenceRule.id)))

    def find_by_id_and_owner(self, rule_id: int, owner_id: int) -> Optional[RecurrenceRule]:
        stmt = select(RecurrenceRule).where(
            RecurrenceRule.id == rule_id,
            RecurrenceRule.owner_id == owner_id,
        )
        return db.session.scalars(stmt).first()

    def insert_within_capacity(self, owner_id: int, day_of_week: int,
                               start_time: time, end_time: time, cap: int) -> Optional[RecurrenceRule]:
        """INSERT ... SELECT guarded by the active-rule count in the same statement.

        Returns None when the owner already has ``cap`` active rules that day.
        The cap holds under concurrency only where writers are serialized (SQLite).
        """
        now = datetime.now(UTC).replace(tzinfo=None)
        active_count = (
            select(func.count(RecurrenceRule.id))
            .where(
                RecurrenceRule.owner_id == owner_id,
                RecurrenceRule.day_of_week == day_of_week,
                RecurrenceRule.is_active.is_(True),
            )
            .correlate(None)
            .scalar_subquery()
        )
        source = select(
            literal(owner_id, Integer),
            literal(day_of_week, Integer),
            literal(start_time, Time),
            literal(end_time, Time),
            literal(True, Boolean),
            literal(now, DateTime),
            literal(now, DateTime),
        ).where(active_count < cap)
        table = RecurrenceRule.__table__
        stmt = insert(table).from_select(
            ["owner_id", "day_of_week", "start_time", "end_time", "is_active", "created_at", "updated_at"],
            source,
        ).returning(table.c.id)
        new_id = db.session.execute(stmt).scalar_one_or_none()
        if new_id is None:
            return None
        return db.session.get(RecurrenceRule, new_id)

    def deactivate(self, rule: RecurrenceRule) -> None:
        rule.is_active = False
        db.session.flush()


class ExceptionStore:
    """Per-date overrides keyed by (rule_id, date)."""

    def find_for_rules_in_window(self, rule_ids: Iterable[int], start: date, end: date) -> List[ScheduleException]:
        ids = list(rule_ids)
        if not ids:
            return []
        stmt = select(ScheduleException).where(
            ScheduleException.rule_id.in_(ids),
            ScheduleException.date >= start,
            ScheduleException.date <= end,
        )
        return list(db.session.scalars(stmt))

    def find_one(self, rule_id: int, day: date) -> Optional[ScheduleException]:
        stmt = select(ScheduleException).where(
            ScheduleException.rule_id == rule_id,
            ScheduleException.date == day,
        )
        return db.session.scalars(stmt).first()

    def upsert(self, rule_id: int, day: date, override: SlotOverride) -> ScheduleException:
        """Last write wins for a given (rule_id, date)."""
        row = self.find_one(rule_id, day)
        if row is not None:
            row.apply(override)
            db.session.flush()
            return row

        row = ScheduleException(rule_id=rule_id, date=day)
        row.apply(override)
        db.session.add(row)
        try:
            db.session.flush()
        except IntegrityError:
            # someone inserted the same (rule_id, date) first; overwrite it
            db.session.rollback()
            row = self.find_one(rule_id, day)
            if row is None:
                raise
            row.apply(override)
            db.session.flush()
        return row
