"""
picks.py
========

Interactive picks.  A draft is in progress while its cursor points
inside ``pick_order`` and complete once the cursor reaches the end.
``make_pick`` fills the slot under the cursor and moves the cursor one
slot forward.  Expired turns are left to the deadline sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from engine import repository
from engine.deadlines import DraftDeadlines, deadlines_for, next_deadline_for_user
from engine.errors import BadRequest, Conflict, Forbidden
from engine.notifier import Notifier, safe_notify
from engine.pick_order import is_mirror_slot
from models.base import utcnow
from models.draft import PlayerPick, RaceDraft

logger = logging.getLogger('pickdriver')


@dataclass
class DraftResult:
    current_pick_index: int
    next_user_id: Optional[int]
    banned_driver_ids: List[int] = field(default_factory=list)
    picked_driver_ids: List[int] = field(default_factory=list)
    your_turn: bool = False
    your_deadline: Optional[datetime] = None
    status: str = "ok"

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "current_pick_index": self.current_pick_index,
            "next_user_id": self.next_user_id,
            "banned_driver_ids": self.banned_driver_ids,
            "picked_driver_ids": self.picked_driver_ids,
            "your_turn": self.your_turn,
            "your_deadline": self.your_deadline.isoformat() if self.your_deadline else None,
        }


def build_result(session: Session, draft: RaceDraft, deadlines: Optional[DraftDeadlines],
                 caller_id: int, banned_for: int) -> DraftResult:
    next_user = draft.current_user_id
    return DraftResult(
        current_pick_index=draft.current_pick_index,
        next_user_id=next_user,
        banned_driver_ids=repository.banned_driver_ids(session, draft.id, banned_for),
        picked_driver_ids=repository.picked_driver_ids(session, draft.id),
        your_turn=next_user == caller_id,
        your_deadline=next_deadline_for_user(deadlines, draft.pick_order, draft.current_pick_index, caller_id),
    )


def can_pick_for(session: Session, league_id: int, teams_enabled: bool, requester_id: int, turn_user_id: int,
                 deadlines: Optional[DraftDeadlines], now: datetime, window: timedelta) -> bool:
    if requester_id == turn_user_id:
        return True
    # teammates may stand in during the last stretch before FP1
    if not teams_enabled or deadlines is None:
        return False
    if not deadlines.teammate_window_open(now, window):
        return False
    return repository.share_team(session, league_id, requester_id, turn_user_id)


def make_pick(session: Session, league_id: int, race_id: int, requester_id: int, driver_id: int,
              now: Optional[datetime] = None, notifier: Optional[Notifier] = None,
              settings: Optional[Settings] = None) -> DraftResult:
    now = now or utcnow()
    settings = settings or Settings()

    league = repository.get_league(session, league_id)
    race = repository.get_race(session, race_id)
    draft = repository.get_draft(session, league_id, race_id)

    if race.has_started(now):
        raise BadRequest("Race already started")

    deadlines = deadlines_for(race, league_id, settings)

    if draft.is_complete:
        raise BadRequest("Draft already completed")

    pick_order = list(draft.pick_order)
    index = draft.current_pick_index
    turn_user_id = pick_order[index]

    window = timedelta(minutes=settings.teammate_window_minutes)
    if not can_pick_for(session, league_id, league.teams_enabled, requester_id, turn_user_id, deadlines, now, window):
        raise Forbidden("It's not your turn to pick")

    if not repository.driver_in_season(session, driver_id, league.season_id):
        raise BadRequest("Driver is not part of this season")
    if driver_id in repository.banned_driver_ids(session, draft.id, turn_user_id):
        raise BadRequest("Driver is banned for you")
    if driver_id in repository.picked_driver_ids(session, draft.id):
        raise Conflict("Driver already picked")

    mirror = is_mirror_slot(pick_order, index, draft.mirror_picks)
    if repository.active_pick(session, draft.id, turn_user_id, mirror) is not None:
        raise Conflict("Pick already submitted")

    session.add(PlayerPick(draft_id=draft.id, user_id=turn_user_id, driver_id=driver_id,
                           is_mirror_pick=mirror, is_autopick=False, picked_at=now))
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise Conflict("Driver already picked")

    repository.advance_cursor(session, draft, index + 1)
    session.commit()
    logger.info(f"Draft {draft.id}: user {turn_user_id} picked driver {driver_id} (slot {index}, by {requester_id})")

    next_user = draft.current_user_id
    if next_user is not None and next_user != turn_user_id:
        safe_notify(notifier, next_user, league_id, race_id, draft.id, draft.current_pick_index)

    return build_result(session, draft, deadlines, requester_id, turn_user_id)


def get_pick_order(session: Session, league_id: int, race_id: int) -> List[int]:
    return list(repository.get_draft(session, league_id, race_id).pick_order)


def get_draft_state(session: Session, league_id: int, race_id: int) -> dict:
    draft = repository.get_draft(session, league_id, race_id)
    return {
        "id": draft.id,
        "league_id": draft.league_id,
        "race_id": draft.race_id,
        "pick_order": list(draft.pick_order),
        "current_pick_index": draft.current_pick_index,
        "mirror_picks": draft.mirror_picks,
        "status": draft.status,
        "picks": [{
            "user_id": pick.user_id,
            "driver_id": pick.driver_id,
            "is_mirror_pick": pick.is_mirror_pick,
            "is_autopick": pick.is_autopick,
            "picked_at": pick.picked_at.isoformat(),
        } for pick in repository.active_picks(session, draft.id)],
    }
