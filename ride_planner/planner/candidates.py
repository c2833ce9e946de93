"""Lookup of unmatched planned workouts by (scheduled date, Peloton ride).

Built once per completion sync from the eligible planned workouts and thrown
away afterwards. Each bucket is ordered by sort_order ascending; workouts that
share a sort_order keep the order they were given in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType


def _date_key(value: date | str) -> str:
    if isinstance(value, date):
        value = value.isoformat()
    # Stores may hand back "2024-01-20" or "2024-01-20T00:00:00"
    return str(value)[:10]


@dataclass(frozen=True)
class PlannedWorkoutCandidate:
    """The fields of a planned workout needed to choose between candidates."""

    id: str
    peloton_ride_id: str
    scheduled_date: date | str
    sort_order: int = 0

    @property
    def date_key(self) -> str:
        return _date_key(self.scheduled_date)


class CandidateIndex:
    """Immutable date -> ride id -> ordered planned workout ids mapping."""

    def __init__(self, buckets: Mapping[str, Mapping[str, tuple[str, ...]]], size: int):
        self._buckets = buckets
        self._size = size

    @classmethod
    def build(cls, candidates: Iterable[PlannedWorkoutCandidate]) -> CandidateIndex:
        grouped: dict[str, dict[str, list[PlannedWorkoutCandidate]]] = {}
        size = 0
        for candidate in candidates:
            grouped.setdefault(candidate.date_key, {}).setdefault(candidate.peloton_ride_id, []).append(candidate)
            size += 1

        buckets: dict[str, Mapping[str, tuple[str, ...]]] = {}
        for day, by_ride in grouped.items():
            # sorted() is stable, so equal sort_order keeps first-seen order
            buckets[day] = MappingProxyType(
                {
                    ride_id: tuple(c.id for c in sorted(workouts, key=lambda c: c.sort_order))
                    for ride_id, workouts in by_ride.items()
                }
            )
        return cls(MappingProxyType(buckets), size)

    def lookup(self, day: date | str, ride_id: str) -> tuple[str, ...]:
        """Return planned workout ids for the day and ride, best candidate first."""
        by_ride = self._buckets.get(_date_key(day))
        if by_ride is None:
            return ()
        return by_ride.get(ride_id, ())

    def __len__(self) -> int:
        return self._size

