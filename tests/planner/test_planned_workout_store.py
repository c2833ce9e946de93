"""Tests for the SQLAlchemy planned workout store against SQLite.

Tests cover:
- Eligibility filter (status, linked workouts, user)
- Guarded completion update
- Unique peloton_workout_id across planned workouts
- Reordering
- Running completion sync twice matches nothing new
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from ride_planner.db.models import PlannedWorkout, PlannedWorkoutStatus
from ride_planner.integrations.peloton.schemas import PelotonRide, PelotonWorkout
from ride_planner.planner.completion_sync import sync_completed_workouts
from ride_planner.planner.store import SqlPlannedWorkoutStore, StoreError

COMPLETED_AT = datetime(2024, 1, 20, 0, 0, tzinfo=timezone.utc)


def _add_planned(session, planned_id, user_id="user-123", scheduled=date(2024, 1, 20), sort_order=0, ride_id="r1", **kwargs):
    planned = PlannedWorkout(
        id=planned_id,
        user_id=user_id,
        peloton_ride_id=ride_id,
        title="30 min Power Zone Ride",
        scheduled_date=scheduled,
        sort_order=sort_order,
        **kwargs,
    )
    session.add(planned)
    session.commit()
    return planned


def _reload(session, planned_id) -> PlannedWorkout:
    session.expire_all()
    return session.execute(select(PlannedWorkout).where(PlannedWorkout.id == planned_id)).scalar_one()


class TestFetchEligibleWorkouts:
    def test_only_planned_unlinked_workouts_of_user(self, db_session):
        _add_planned(db_session, "eligible", sort_order=3)
        _add_planned(db_session, "done", status=PlannedWorkoutStatus.COMPLETED.value)
        _add_planned(db_session, "linked", peloton_workout_id="w-old")
        _add_planned(db_session, "other-user", user_id="user-999")

        candidates = SqlPlannedWorkoutStore(db_session).fetch_eligible_workouts("user-123")

        assert [c.id for c in candidates] == ["eligible"]
        assert candidates[0].peloton_ride_id == "r1"
        assert candidates[0].date_key == "2024-01-20"
        assert candidates[0].sort_order == 3

    def test_sort_order_defaults_to_zero(self, db_session):
        db_session.add(PlannedWorkout(id="p1", user_id="user-123", peloton_ride_id="r1", scheduled_date=date(2024, 1, 20)))
        db_session.commit()

        candidates = SqlPlannedWorkoutStore(db_session).fetch_eligible_workouts("user-123")

        assert candidates[0].sort_order == 0


class TestMarkCompleted:
    def test_sets_status_reference_and_timestamp(self, db_session):
        _add_planned(db_session, "p1")

        SqlPlannedWorkoutStore(db_session).mark_completed("p1", peloton_workout_id="w1", completed_at=COMPLETED_AT)

        planned = _reload(db_session, "p1")
        assert planned.status == PlannedWorkoutStatus.COMPLETED.value
        assert planned.peloton_workout_id == "w1"
        assert planned.completed_at.replace(tzinfo=None) == COMPLETED_AT.replace(tzinfo=None)

    def test_already_completed_workout_is_rejected(self, db_session):
        _add_planned(db_session, "p1")
        store = SqlPlannedWorkoutStore(db_session)
        store.mark_completed("p1", peloton_workout_id="w1", completed_at=COMPLETED_AT)

        with pytest.raises(StoreError):
            store.mark_completed("p1", peloton_workout_id="w2", completed_at=COMPLETED_AT)

        assert _reload(db_session, "p1").peloton_workout_id == "w1"

    def test_unknown_workout_is_rejected(self, db_session):
        with pytest.raises(StoreError):
            SqlPlannedWorkoutStore(db_session).mark_completed("missing", peloton_workout_id="w1", completed_at=COMPLETED_AT)

    def test_peloton_workout_cannot_complete_two_planned_workouts(self, db_session):
        _add_planned(db_session, "p1")
        _add_planned(db_session, "p2", sort_order=1)
        store = SqlPlannedWorkoutStore(db_session)
        store.mark_completed("p1", peloton_workout_id="w1", completed_at=COMPLETED_AT)

        with pytest.raises(StoreError):
            store.mark_completed("p2", peloton_workout_id="w1", completed_at=COMPLETED_AT)

        # Session is still usable and p2 is untouched
        p2 = _reload(db_session, "p2")
        assert p2.status == PlannedWorkoutStatus.PLANNED.value
        assert p2.peloton_workout_id is None
        store.mark_completed("p2", peloton_workout_id="w2", completed_at=COMPLETED_AT)
        assert _reload(db_session, "p2").peloton_workout_id == "w2"


class TestReorderWorkouts:
    def test_sort_order_follows_list_position(self, db_session):
        for planned_id in ("a", "b", "c"):
            _add_planned(db_session, planned_id)

        updated = SqlPlannedWorkoutStore(db_session).reorder_workouts("user-123", date(2024, 1, 20), ["c", "a", "b"])

        assert updated == 3
        assert [_reload(db_session, i).sort_order for i in ("c", "a", "b")] == [0, 1, 2]

    def test_other_users_and_days_are_ignored(self, db_session):
        _add_planned(db_session, "mine", sort_order=5)
        _add_planned(db_session, "theirs", user_id="user-999", sort_order=5)
        _add_planned(db_session, "tomorrow", scheduled=date(2024, 1, 21), sort_order=5)

        updated = SqlPlannedWorkoutStore(db_session).reorder_workouts(
            "user-123", date(2024, 1, 20), ["theirs", "tomorrow", "mine"]
        )

        assert updated == 1
        assert _reload(db_session, "mine").sort_order == 2
        assert _reload(db_session, "theirs").sort_order == 5
        assert _reload(db_session, "tomorrow").sort_order == 5

    def test_reorder_changes_which_workout_is_matched(self, db_session):
        _add_planned(db_session, "a", sort_order=0)
        _add_planned(db_session, "b", sort_order=1)
        store = SqlPlannedWorkoutStore(db_session)
        store.reorder_workouts("user-123", date(2024, 1, 20), ["b", "a"])

        result = sync_completed_workouts(
            "user-123", "peloton-user-123", _StaticPeloton([_workout("w1")]), store, timezone="UTC"
        )

        assert result.matched == 1
        assert _reload(db_session, "b").peloton_workout_id == "w1"
        assert _reload(db_session, "a").peloton_workout_id is None


class _StaticPeloton:
    def __init__(self, workouts):
        self._workouts = workouts

    def get_user_workouts(self, peloton_user_id, *, limit=20, joins="ride"):
        return list(self._workouts)


def _workout(workout_id, created_at=1705708800, ride_id="r1"):
    return PelotonWorkout(id=workout_id, created_at=created_at, status="COMPLETE", ride=PelotonRide(id=ride_id))


class TestCompletionSyncWithDatabase:
    def test_second_sync_matches_nothing(self, db_session):
        _add_planned(db_session, "p1")
        _add_planned(db_session, "p2", ride_id="r2")
        peloton = _StaticPeloton([_workout("w1"), _workout("w2", ride_id="r2")])
        store = SqlPlannedWorkoutStore(db_session)

        first = sync_completed_workouts("user-123", "peloton-user-123", peloton, store, timezone="UTC")
        second = sync_completed_workouts("user-123", "peloton-user-123", peloton, store, timezone="UTC")

        assert first.matched == 2
        assert second.success is True
        assert second.matched == 0

    def test_two_completions_of_same_class_fill_both_slots(self, db_session):
        _add_planned(db_session, "late", sort_order=1)
        _add_planned(db_session, "early", sort_order=0)
        peloton = _StaticPeloton([_workout("w1"), _workout("w2", created_at=1705712400)])

        result = sync_completed_workouts(
            "user-123", "peloton-user-123", peloton, SqlPlannedWorkoutStore(db_session), timezone="UTC"
        )

        assert result.matched == 2
        assert _reload(db_session, "early").peloton_workout_id == "w1"
        assert _reload(db_session, "late").peloton_workout_id == "w2"

    def test_workout_already_linked_elsewhere_counts_as_failure(self, db_session):
        _add_planned(db_session, "old", scheduled=date(2024, 1, 18), peloton_workout_id="w1",
                     status=PlannedWorkoutStatus.COMPLETED.value)
        _add_planned(db_session, "p1")

        result = sync_completed_workouts(
            "user-123", "peloton-user-123", _StaticPeloton([_workout("w1")]), SqlPlannedWorkoutStore(db_session),
            timezone="UTC",
        )

        assert result.success is False
        assert result.matched == 0
        assert result.error == "1 workout(s) failed to update in database"
        assert _reload(db_session, "p1").status == PlannedWorkoutStatus.PLANNED.value
