from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import StrEnum

from sqlalchemy import Date, DateTime, Index, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class PlannedWorkoutStatus(StrEnum):
    """Lifecycle of a planned workout.

    Completion sync only moves PLANNED -> COMPLETED; it never reverses it.
    """

    PLANNED = "planned"
    COMPLETED = "completed"


class Profile(Base):
    """User profile.

    Stores:
    - id: User ID (same value as the JWT 'sub' claim)
    - peloton_user_id: Peloton user ID used to fetch workouts (nullable until connected)
    - timezone: IANA timezone preference (nullable, e.g. "America/Los_Angeles")
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    peloton_user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    timezone: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class PelotonToken(Base):
    """Encrypted Peloton OAuth tokens, one row per user."""

    __tablename__ = "peloton_tokens"

    user_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    access_token_encrypted: Mapped[str] = mapped_column(String, nullable=False)
    refresh_token_encrypted: Mapped[str | None] = mapped_column(String, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class PlannedWorkout(Base):
    """A Peloton class the user scheduled for a calendar day.

    sort_order comes from drag-and-drop reordering and is only meaningful among
    workouts on the same scheduled_date. peloton_workout_id is set exactly once,
    when completion sync matches a finished Peloton workout to this row.
    """

    __tablename__ = "planned_workouts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    peloton_ride_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    status: Mapped[str] = mapped_column(String, nullable=False, default=PlannedWorkoutStatus.PLANNED.value)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    peloton_workout_id: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_planned_workouts_sort_order", "user_id", "scheduled_date", "sort_order"),
        # Each Peloton workout can complete at most one planned workout
        Index(
            "idx_planned_workouts_peloton_workout_id",
            "peloton_workout_id",
            unique=True,
            postgresql_where=text("peloton_workout_id IS NOT NULL"),
            sqlite_where=text("peloton_workout_id IS NOT NULL"),
        ),
    )
