"""Bans: invalidate a prior pick and hand the turn back to its owner."""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from engine import repository
from engine.deadlines import deadlines_for
from engine.errors import BadRequest, Conflict, Forbidden, NotFound
from engine.notifier import Notifier, safe_notify
from engine.pick_order import slots_of
from engine.picks import DraftResult, build_result
from models.base import utcnow
from models.draft import BanCredit, PlayerPick, RaceDraft

logger = logging.getLogger('pickdriver')


def resolve_ban_scope(session: Session, league_id: int, teams_enabled: bool, requester_id: int,
                      settings: Settings) -> Tuple[int, bool, int]:
    """Return ``(scope_id, is_team_scope, initial_credit)`` for the requester."""
    if teams_enabled:
        team_id = repository.team_of_user(session, league_id, requester_id)
        if team_id is None:
            raise BadRequest("You are not on a team in this league")
        return team_id, True, settings.ban_credits_team
    return requester_id, False, settings.ban_credits_solo


def bans_remaining(session: Session, draft_id: int, scope_id: int, is_team_scope: bool,
                   initial_credit: int) -> int:
    credit = session.query(BanCredit)\
        .filter(BanCredit.draft_id == draft_id)\
        .filter(BanCredit.scope_id == scope_id)\
        .filter(BanCredit.is_team_scope == is_team_scope).first()
    return credit.bans_remaining if credit else initial_credit


def consume_ban_credit(session: Session, draft_id: int, scope_id: int, is_team_scope: bool,
                       initial_credit: int) -> int:
    """Take one ban from the scope's pool, creating the pool on first use."""
    credit = session.query(BanCredit)\
        .filter(BanCredit.draft_id == draft_id)\
        .filter(BanCredit.scope_id == scope_id)\
        .filter(BanCredit.is_team_scope == is_team_scope).first()

    if credit is None:
        if initial_credit <= 0:
            raise BadRequest("No bans remaining")
        session.add(BanCredit(draft_id=draft_id, scope_id=scope_id, is_team_scope=is_team_scope,
                              bans_remaining=initial_credit - 1))
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            raise Conflict("Ban already in progress, try again")
        return initial_credit - 1

    result = session.execute(
        update(BanCredit)
        .where(BanCredit.id == credit.id)
        .where(BanCredit.bans_remaining > 0)
        .values(bans_remaining=BanCredit.bans_remaining - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise BadRequest("No bans remaining")
    session.refresh(credit)
    return credit.bans_remaining


def ban_pick(session: Session, league_id: int, race_id: int, requester_id: int, target_user_id: int,
             driver_id: int, now: Optional[datetime] = None, notifier: Optional[Notifier] = None,
             settings: Optional[Settings] = None) -> DraftResult:
    now = now or utcnow()
    settings = settings or Settings()

    league = repository.get_league(session, league_id)
    race = repository.get_race(session, race_id)
    draft: RaceDraft = repository.get_draft(session, league_id, race_id)

    if not league.bans_enabled:
        raise BadRequest("Bans are not enabled in this league")

    pick_order = list(draft.pick_order)
    requester_slots = slots_of(pick_order, requester_id)
    target_slots = slots_of(pick_order, target_user_id)
    if not requester_slots or not target_slots:
        raise BadRequest("User not found in pick order")
    if draft.is_complete:
        raise BadRequest("Draft already completed")

    if pick_order[-1] == target_user_id and pick_order[0] != target_user_id:
        raise Forbidden("The last pick of the draft cannot be banned")

    if repository.has_banned(session, draft.id, requester_id, target_user_id):
        raise Forbidden("You have already banned this player in this draft")

    pick = session.query(PlayerPick)\
        .filter(PlayerPick.draft_id == draft.id)\
        .filter(PlayerPick.user_id == target_user_id)\
        .filter(PlayerPick.driver_id == driver_id)\
        .filter(PlayerPick.is_banned == False).first()
    if pick is None:
        raise NotFound("Pick to ban not found")

    target_index = target_slots[-1] if pick.is_mirror_pick else target_slots[0]

    if requester_id == target_user_id:
        raise Forbidden("You cannot ban your own pick")
    valid_ban = any(slot == target_index + 1 for slot in requester_slots)
    if not valid_ban and league.teams_enabled:
        valid_ban = repository.share_team(session, league_id, requester_id, target_user_id)
    if not valid_ban:
        raise Forbidden("You can only ban the previous pick")

    scope_id, is_team_scope, initial_credit = resolve_ban_scope(session, league_id, league.teams_enabled,
                                                                requester_id, settings)
    remaining = consume_ban_credit(session, draft.id, scope_id, is_team_scope, initial_credit)

    result = session.execute(
        update(PlayerPick)
        .where(PlayerPick.id == pick.id)
        .where(PlayerPick.is_banned == False)
        .values(is_banned=True, banned_by=requester_id, banned_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise Conflict("Pick was already banned")

    repository.rewind_cursor(session, draft, target_index)
    session.commit()
    logger.info(f"Draft {draft.id}: user {requester_id} banned driver {driver_id} from user {target_user_id}, "
                f"turn back to slot {target_index}, {remaining} bans left for scope {scope_id}")

    safe_notify(notifier, target_user_id, league_id, race_id, draft.id, target_index)

    deadlines = deadlines_for(race, league_id, settings)
    return build_result(session, draft, deadlines, requester_id, target_user_id)
