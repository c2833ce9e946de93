"""Planned workout persistence used by completion sync and reordering."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timezone
from typing import Protocol

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ride_planner.db.models import PlannedWorkout, PlannedWorkoutStatus
from ride_planner.planner.candidates import PlannedWorkoutCandidate


class StoreError(Exception):
    """Raised when reading or writing planned workouts fails."""


class PlannedWorkoutStore(Protocol):
    def fetch_eligible_workouts(self, user_id: str) -> list[PlannedWorkoutCandidate]: ...

    def mark_completed(
        self,
        workout_id: str,
        *,
        peloton_workout_id: str,
        completed_at: datetime,
    ) -> None: ...


class SqlPlannedWorkoutStore:
    """SQLAlchemy-backed store.

    Every successful mark_completed is committed on its own, so a failed write
    later in the same sync does not roll back matches already made.
    """

    def __init__(self, session: Session):
        self._session = session

    def fetch_eligible_workouts(self, user_id: str) -> list[PlannedWorkoutCandidate]:
        """Planned workouts still awaiting a Peloton completion, in no particular order.

        Raises:
            StoreError: If the query fails
        """
        query = select(
            PlannedWorkout.id,
            PlannedWorkout.peloton_ride_id,
            PlannedWorkout.scheduled_date,
            PlannedWorkout.sort_order,
        ).where(
            PlannedWorkout.user_id == user_id,
            PlannedWorkout.status == PlannedWorkoutStatus.PLANNED.value,
            PlannedWorkout.peloton_workout_id.is_(None),
        )
        try:
            rows = self._session.execute(query).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        return [
            PlannedWorkoutCandidate(
                id=row.id,
                peloton_ride_id=row.peloton_ride_id,
                scheduled_date=row.scheduled_date,
                sort_order=row.sort_order,
            )
            for row in rows
        ]

    def mark_completed(
        self,
        workout_id: str,
        *,
        peloton_workout_id: str,
        completed_at: datetime,
    ) -> None:
        """Link a planned workout to the Peloton workout that completed it.

        The update only applies while the row is still planned and unlinked, so
        a concurrent sync for the same user cannot overwrite an earlier match.

        Raises:
            StoreError: If the row is no longer awaiting completion, the Peloton
                workout is already linked elsewhere, or the write fails
        """
        stmt = (
            update(PlannedWorkout)
            .where(
                PlannedWorkout.id == workout_id,
                PlannedWorkout.status == PlannedWorkoutStatus.PLANNED.value,
                PlannedWorkout.peloton_workout_id.is_(None),
            )
            .values(
                status=PlannedWorkoutStatus.COMPLETED.value,
                completed_at=completed_at,
                peloton_workout_id=peloton_workout_id,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(stmt)
            if result.rowcount == 0:
                self._session.rollback()
                raise StoreError(f"Planned workout {workout_id} is not awaiting completion")
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise StoreError(f"Peloton workout {peloton_workout_id} is already linked to a planned workout") from e
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(str(e)) from e

    def reorder_workouts(self, user_id: str, scheduled_date: date, workout_ids: Sequence[str]) -> int:
        """Persist drag-and-drop order: each workout's sort_order becomes its list position.

        Ids that are not the user's workouts on scheduled_date are ignored.

        Returns:
            Number of planned workouts updated

        Raises:
            StoreError: If the update fails
        """
        updated = 0
        try:
            for index, workout_id in enumerate(workout_ids):
                result = self._session.execute(
                    update(PlannedWorkout)
                    .where(
                        PlannedWorkout.id == workout_id,
                        PlannedWorkout.user_id == user_id,
                        PlannedWorkout.scheduled_date == scheduled_date,
                    )
                    .values(sort_order=index, updated_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                updated += result.rowcount
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(str(e)) from e

        if updated != len(workout_ids):
            logger.warning(
                f"Reorder touched {updated} of {len(workout_ids)} planned workouts "
                f"user_id={user_id} date={scheduled_date.isoformat()}"
            )
        return updated
