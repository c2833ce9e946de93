"""Completion sync: mark planned workouts completed from finished Peloton workouts.

Matching rules:
- Same user
- Same Peloton class (ride id)
- Same calendar day, in the user's timezone
- Several planned workouts for one class on one day -> lowest sort_order first
- A planned workout is written at most once per sync, a Peloton workout is used at most once

Only the eligibility query and unexpected exceptions abort a sync. A failed
write is counted and the remaining workouts are still processed.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from pydantic import BaseModel

from ride_planner.config.settings import settings
from ride_planner.integrations.peloton.schemas import PelotonWorkout
from ride_planner.planner.candidates import CandidateIndex
from ride_planner.planner.store import PlannedWorkoutStore, StoreError
from ride_planner.utils.timezone import epoch_to_utc, timestamp_to_local_date


class ActivitySource(Protocol):
    def get_user_workouts(
        self,
        peloton_user_id: str,
        *,
        limit: int = 20,
        joins: str | None = "ride",
    ) -> list[PelotonWorkout]: ...


class CompletionSyncResult(BaseModel):
    """Outcome of one completion sync.

    Attributes:
        success: False if the sync aborted or any write failed
        matched: Number of planned workouts marked completed
        error: Description of the abort or of the failed write count
    """

    success: bool
    matched: int
    error: str | None = None


def _select_candidate(candidate_ids: tuple[str, ...], attempted_ids: set[str]) -> str | None:
    for candidate_id in candidate_ids:
        if candidate_id not in attempted_ids:
            return candidate_id
    return None


def _match_workouts(
    *,
    user_id: str,
    completed_workouts: list[PelotonWorkout],
    index: CandidateIndex,
    store: PlannedWorkoutStore,
    timezone: str | None,
) -> CompletionSyncResult:
    attempted_ids: set[str] = set()
    consumed_workout_ids: set[str] = set()
    matched = 0
    failed = 0

    for workout in completed_workouts:
        if workout.id in consumed_workout_ids:
            logger.debug(f"Skipping duplicate Peloton workout {workout.id} in feed")
            continue

        ride_id = workout.ride_id
        if ride_id is None:
            continue

        completion_date = timestamp_to_local_date(workout.created_at, timezone)
        planned_id = _select_candidate(index.lookup(completion_date, ride_id), attempted_ids)
        if planned_id is None:
            logger.debug(
                f"No planned workout for Peloton workout {workout.id}: ride_id={ride_id} date={completion_date}"
            )
            continue

        # Recorded before the write so a failed write is not retried in this sync
        attempted_ids.add(planned_id)
        consumed_workout_ids.add(workout.id)

        try:
            store.mark_completed(
                planned_id,
                peloton_workout_id=workout.id,
                completed_at=epoch_to_utc(workout.created_at),
            )
        except StoreError as e:
            failed += 1
            logger.error(
                f"Failed to update planned workout {planned_id} with Peloton workout {workout.id}: {e}"
            )
            continue

        matched += 1
        logger.info(
            f"Matched planned workout {planned_id} to Peloton workout {workout.id} "
            f"(ride_id={ride_id}, date={completion_date})"
        )

    logger.info(
        f"Completion sync finished: user_id={user_id} matched={matched} failed={failed} "
        f"completed_workouts={len(completed_workouts)} eligible={len(index)}"
    )
    return CompletionSyncResult(
        success=failed == 0,
        matched=matched,
        error=f"{failed} workout(s) failed to update in database" if failed > 0 else None,
    )


def sync_completed_workouts(
    user_id: str,
    peloton_user_id: str,
    peloton: ActivitySource,
    store: PlannedWorkoutStore,
    *,
    timezone: str | None = None,
    limit: int | None = None,
) -> CompletionSyncResult:
    """Mark the user's planned workouts completed from recent Peloton workouts.

    Looks at the most recent page of Peloton workouts (settings.completion_sync_limit
    by default) and never raises; every failure comes back as a result.

    Args:
        user_id: Owner of the planned workouts
        peloton_user_id: Peloton user whose workouts are fetched
        peloton: Peloton client (anything with get_user_workouts)
        store: Planned workout store
        timezone: IANA timezone used to turn completion times into calendar days.
            Missing or unknown values fall back to server local time.
        limit: Override for the number of Peloton workouts fetched; values below 1
            fall back to settings.completion_sync_limit

    Returns:
        CompletionSyncResult
    """
    if limit is None:
        limit = settings.completion_sync_limit
    elif limit < 1:
        logger.warning(f"Invalid completion sync limit {limit}, using {settings.completion_sync_limit}")
        limit = settings.completion_sync_limit

    try:
        workouts = peloton.get_user_workouts(
            peloton_user_id,
            limit=limit,
            joins="ride",
        )

        completed_workouts = [w for w in workouts if w.is_complete and w.ride_id]
        if not completed_workouts:
            logger.debug(f"No completed Peloton workouts for user_id={user_id}")
            return CompletionSyncResult(success=True, matched=0)

        try:
            eligible = store.fetch_eligible_workouts(user_id)
        except StoreError as e:
            logger.error(f"Failed to fetch planned workouts for user_id={user_id}: {e}")
            return CompletionSyncResult(
                success=False,
                matched=0,
                error=f"Failed to fetch planned workouts: {e}",
            )

        if not eligible:
            logger.debug(f"No planned workouts awaiting completion for user_id={user_id}")
            return CompletionSyncResult(success=True, matched=0)

        return _match_workouts(
            user_id=user_id,
            completed_workouts=completed_workouts,
            index=CandidateIndex.build(eligible),
            store=store,
            timezone=timezone,
        )
    except Exception as e:
        logger.exception(f"Completion sync error for user_id={user_id}")
        return CompletionSyncResult(success=False, matched=0, error=str(e) or "Unknown error")
