"""Drag-and-drop reordering of planned workouts within a day.

The resulting sort_order decides which planned workout a Peloton completion
is matched to when the same class is planned more than once on a day.
"""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ride_planner.api.dependencies.auth import get_current_user_id
from ride_planner.db.session import get_session
from ride_planner.planner.store import SqlPlannedWorkoutStore, StoreError

router = APIRouter(prefix="/planner", tags=["planner"])


class ReorderWorkoutsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: dt.date
    workout_ids: list[str] = Field(alias="workoutIds")


@router.post("/workouts/reorder")
def reorder_workouts(
    body: ReorderWorkoutsRequest,
    user_id: str = Depends(get_current_user_id),
) -> dict[str, bool]:
    """Set sort_order of the day's planned workouts to their position in workout_ids."""
    with get_session() as session:
        try:
            SqlPlannedWorkoutStore(session).reorder_workouts(user_id, body.date, body.workout_ids)
        except StoreError as e:
            logger.error(f"Reorder workouts error for user_id={user_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error",
            ) from e

    return {"success": True}
