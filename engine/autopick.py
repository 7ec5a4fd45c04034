"""Autopick preferences and the fallback pick made when a turn expires."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from engine import repository
from engine.errors import BadRequest, Forbidden
from models.draft import PlayerAutopick, PlayerPick, RaceDraft
from models.season import Driver

logger = logging.getLogger('pickdriver')


def get_autopick_preference(session: Session, league_id: int, user_id: int) -> List[int]:
    row = session.query(PlayerAutopick)\
        .filter(PlayerAutopick.league_id == league_id)\
        .filter(PlayerAutopick.user_id == user_id).first()
    return list(row.driver_order) if row else []


def upsert_autopick_preference(session: Session, league_id: int, user_id: int,
                               driver_ids: Sequence[int]) -> List[int]:
    league = repository.get_league(session, league_id)
    if not repository.is_member(session, league_id, user_id):
        raise Forbidden("You are not a member of this league")

    driver_order = [int(driver_id) for driver_id in driver_ids]
    if len(set(driver_order)) != len(driver_order):
        raise BadRequest("Autopick list contains duplicate drivers")
    if driver_order:
        known = session.query(Driver.id)\
            .filter(Driver.season_id == league.season_id)\
            .filter(Driver.id.in_(driver_order)).count()
        if known != len(driver_order):
            raise BadRequest("Autopick list contains unknown drivers")

    row = session.query(PlayerAutopick)\
        .filter(PlayerAutopick.league_id == league_id)\
        .filter(PlayerAutopick.user_id == user_id).first()
    if row is None:
        row = PlayerAutopick(league_id=league_id, user_id=user_id, driver_order=driver_order)
        session.add(row)
    else:
        row.driver_order = driver_order
    session.commit()
    return driver_order


def attempt_autopick(session: Session, draft: RaceDraft, user_id: int, is_mirror_pick: bool) -> Optional[int]:
    """Pick the first available driver from the user's preference list.

    Returns the driver id that was picked, or ``None`` when the slot was
    already filled or nothing on the list is available.  Each insert is
    committed on its own so that a lost race against a concurrent writer
    only rolls back that insert.
    """
    if repository.active_pick(session, draft.id, user_id, is_mirror_pick) is not None:
        return None

    driver_order = get_autopick_preference(session, draft.league_id, user_id)
    if not driver_order:
        return None

    banned = set(repository.banned_driver_ids(session, draft.id, user_id))
    picked = set(repository.picked_driver_ids(session, draft.id))

    for driver_id in driver_order:
        if driver_id in banned or driver_id in picked:
            continue
        session.add(PlayerPick(draft_id=draft.id, user_id=user_id, driver_id=driver_id,
                               is_mirror_pick=is_mirror_pick, is_autopick=True))
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info(f"Autopick of driver {driver_id} for user {user_id} in draft {draft.id} lost a race, re-checking")
            if repository.active_pick(session, draft.id, user_id, is_mirror_pick) is not None:
                return None
            continue
        logger.info(f"Autopicked driver {driver_id} for user {user_id} in draft {draft.id}")
        return driver_id

    return None
