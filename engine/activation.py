"""Draft activation: freeze a pick order for every remaining race of the season."""

import logging
import random
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from engine import repository, team_balance
from engine.errors import BadRequest, Conflict, Forbidden
from engine.notifier import Notifier, safe_notify
from engine.pick_order import base_order, race_order
from models.base import utcnow
from models.draft import DRAFT_OPEN, RaceDraft
from models.league import LEAGUE_ACTIVE
from models.season import Race

logger = logging.getLogger('pickdriver')


def upcoming_races(session: Session, season_id: int, now: datetime) -> List[Race]:
    races = session.query(Race)\
        .filter(Race.season_id == season_id)\
        .filter(Race.completed == False)\
        .order_by(Race.round.asc()).all()
    return [race for race in races if race.start_time is not None and race.start_time > now]


def activate_draft(session: Session, league_id: int, requester_id: int, now: Optional[datetime] = None,
                   rng: Optional[random.Random] = None, notifier: Optional[Notifier] = None) -> List[RaceDraft]:
    now = now or utcnow()
    league = repository.get_league(session, league_id)

    if league.owner_id != requester_id:
        raise Forbidden("Only the league owner can perform this action")
    if not league.is_pending:
        raise BadRequest("League draft is already active")

    members = repository.members_of(session, league_id)
    if len(members) != league.max_players:
        raise BadRequest("Not all players have joined the league")

    teams = None
    if league.teams_enabled:
        teams = repository.teams_of(session, league_id)
        assigned = {user_id for _, team_members in teams for user_id in team_members}
        if not set(members) <= assigned:
            raise BadRequest("Not all players are assigned to a team")
        limit = team_balance.max_teams(len(members), repository.constructor_count(session, league.season_id))
        team_balance.validate(len(members), [len(team_members) for _, team_members in teams], limit)

    races = upcoming_races(session, league.season_id, now)
    if not races:
        raise BadRequest("No upcoming races to draft")

    order = base_order(members, teams, repository.manual_ranks_of(session, league_id), rng)
    league.initial_race_round = races[0].round

    drafts = []
    for offset, race in enumerate(races):
        draft = RaceDraft(league_id=league_id, race_id=race.id,
                          pick_order=race_order(order, offset, league.mirror_picks_enabled),
                          current_pick_index=0, mirror_picks=league.mirror_picks_enabled, status=DRAFT_OPEN)
        session.add(draft)
        drafts.append(draft)

    league.status = LEAGUE_ACTIVE
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("League draft is already active")
    logger.info(f"League {league_id} activated: {len(drafts)} drafts from round {league.initial_race_round}, "
                f"base order {order}")

    first = drafts[0]
    safe_notify(notifier, first.pick_order[0], league_id, first.race_id, first.id, 0)
    return drafts
