from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

COMPLETE_STATUS = "COMPLETE"


class PelotonRide(BaseModel):
    """The class (ride) a workout was taken from, present when joins=ride."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str | None = None
    duration: int | None = None
    instructor_id: str | None = None


class PelotonWorkout(BaseModel):
    """One workout instance from /api/user/{id}/workouts.

    created_at is epoch seconds. status is COMPLETE once the class is finished.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: int
    status: str
    fitness_discipline: str | None = None
    ride: PelotonRide | None = None

    raw: dict[str, Any] | None = None  # Raw API payload

    @property
    def ride_id(self) -> str | None:
        if self.ride is None or not self.ride.id:
            return None
        return self.ride.id

    @property
    def is_complete(self) -> bool:
        return self.status == COMPLETE_STATUS
