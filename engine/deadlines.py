"""Pick deadlines derived from a race's FP1 time.

The first half of the pick order (``ceil(N/2)`` slots) must pick before
``fp1 - 36h``; the remaining slots before FP1 itself.  A deadline counts
as passed only once ``now`` is strictly after it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from config import Settings
from engine.errors import BadRequest
from models.season import Race


@dataclass(frozen=True)
class DraftDeadlines:
    race_id: int
    league_id: int
    first_half_deadline: datetime
    second_half_deadline: datetime

    def deadline_for(self, index: int, order_length: int) -> datetime:
        if index < first_half_count(order_length):
            return self.first_half_deadline
        return self.second_half_deadline

    def has_expired(self, index: int, order_length: int, now: datetime) -> bool:
        return now > self.deadline_for(index, order_length)

    def teammate_window_open(self, now: datetime, window: timedelta) -> bool:
        return now > self.second_half_deadline - window

    def as_dict(self) -> dict:
        return {
            "race_id": self.race_id,
            "league_id": self.league_id,
            "first_half_deadline": self.first_half_deadline.isoformat(),
            "second_half_deadline": self.second_half_deadline.isoformat(),
        }


def first_half_count(order_length: int) -> int:
    return (order_length + 1) // 2


def deadlines_for(race: Race, league_id: int, settings: Optional[Settings] = None) -> Optional[DraftDeadlines]:
    """Deadlines for ``race``, or ``None`` while its FP1 time is unknown."""
    if race.fp1_time is None:
        return None
    settings = settings or Settings()
    return DraftDeadlines(
        race_id=race.id,
        league_id=league_id,
        first_half_deadline=race.fp1_time - timedelta(hours=settings.first_half_offset_hours),
        second_half_deadline=race.fp1_time,
    )


def require_deadlines(race: Race, league_id: int, settings: Optional[Settings] = None) -> DraftDeadlines:
    deadlines = deadlines_for(race, league_id, settings)
    if deadlines is None:
        raise BadRequest("Race schedule is not available yet")
    return deadlines


def next_deadline_for_user(deadlines: Optional[DraftDeadlines], pick_order: Sequence[int],
                           from_index: int, user_id: int) -> Optional[datetime]:
    """Deadline of ``user_id``'s next slot at or after ``from_index``.

    Falls back to the second-half deadline once the user has no turn left.
    """
    if deadlines is None:
        return None
    for index in range(max(from_index, 0), len(pick_order)):
        if pick_order[index] == user_id:
            return deadlines.deadline_for(index, len(pick_order))
    return deadlines.second_half_deadline
