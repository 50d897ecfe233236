from __future__ import annotations
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from typing import Union

from flask_login import UserMixin
from sqlalchemy import (
    CheckConstraint, ForeignKey, UniqueConstraint, Index, Boolean, Date, DateTime, Time,
    Integer,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


# ---------- Override variants ----------
@dataclass(frozen=True)
class Rescheduled:
    """The occurrence on that date keeps happening, at different times."""
    start_time: time
    end_time: time

    def __post_init__(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be > start_time")


@dataclass(frozen=True)
class Cancelled:
    """The occurrence on that date is suppressed."""


SlotOverride = Union[Rescheduled, Cancelled]


# ---------- Core Entities ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    rules = relationship("RecurrenceRule", back_populates="owner", cascade="all, delete-orphan")

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def __repr__(self):
        return f"<User {self.email}>"


class RecurrenceRule(db.Model):
    __tablename__ = "recurrence_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun .. 6=Sat
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    # soft delete; rows are never removed
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    owner = relationship("User", back_populates="rules")
    exceptions = relationship("ScheduleException", back_populates="rule", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_rule_day_of_week"),
        CheckConstraint("end_time > start_time", name="ck_rule_time_range"),
        Index("ix_rule_owner_day_active", "owner_id", "day_of_week", "is_active"),
    )

    def __repr__(self):
        return f"<RecurrenceRule {self.id} dow={self.day_of_week} {self.start_time}-{self.end_time}>"


class ScheduleException(db.Model):
    __tablename__ = "schedule_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    rule_id: Mapped[int] = mapped_column(ForeignKey("recurrence_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time)
    end_time: Mapped[time | None] = mapped_column(Time)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    rule = relationship("RecurrenceRule", back_populates="exceptions")

    __table_args__ = (
        UniqueConstraint("rule_id", "date", name="uq_exception_rule_date"),
        CheckConstraint(
            "(is_deleted AND start_time IS NULL AND end_time IS NULL)"
            " OR (NOT is_deleted AND start_time IS NOT NULL AND end_time IS NOT NULL"
            " AND end_time > start_time)",
            name="ck_exception_override_shape",
        ),
    )

    @property
    def override(self) -> SlotOverride:
        if self.is_deleted:
            return Cancelled()
        return Rescheduled(self.start_time, self.end_time)

    def apply(self, override: SlotOverride) -> None:
        if isinstance(override, Cancelled):
            self.is_deleted = True
            self.start_time = None
            self.end_time = None
        elif isinstance(override, Rescheduled):
            self.is_deleted = False
            self.start_time = override.start_time
            self.end_time = override.end_time
        else:
            raise TypeError(f"unsupported override: {override!r}")

    def __repr__(self):
        return f"<ScheduleException rule={self.rule_id} {self.date} {self.override}>"
