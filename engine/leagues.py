"""League membership: create, join and the owner's manual pick order."""

import random
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from engine import repository
from engine.errors import BadRequest, Conflict, Forbidden, NotFound
from models.league import LEAGUE_PENDING, League, LeagueMember
from models.season import Season

CODE_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_code(rng: Optional[random.Random] = None, length: int = 6) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(CODE_CHARSET) for _ in range(length))


def require_owner(league: League, user_id: int) -> None:
    if league.owner_id != user_id:
        raise Forbidden("Only the league owner can perform this action")


def require_pending(league: League) -> None:
    if not league.is_pending:
        raise BadRequest("League draft has already started")


def create_league(session: Session, owner_id: int, name: str, max_players: int = 20,
                  teams_enabled: bool = False, bans_enabled: bool = False, mirror_picks_enabled: bool = False,
                  rng: Optional[random.Random] = None) -> League:
    if not name or not name.strip():
        raise BadRequest("League name is required")
    if max_players < 2:
        raise BadRequest("A league needs at least 2 players")

    season = session.query(Season).filter(Season.active == True).first()
    if season is None:
        raise BadRequest("No active season")

    code = generate_code(rng)
    while session.query(League).filter(League.code == code).count() > 0:
        code = generate_code(rng)

    league = League(name=name.strip(), code=code, status=LEAGUE_PENDING, owner_id=owner_id,
                    season_id=season.id, max_players=max_players, teams_enabled=teams_enabled,
                    bans_enabled=bans_enabled, mirror_picks_enabled=mirror_picks_enabled)
    session.add(league)
    session.flush()
    session.add(LeagueMember(league_id=league.id, user_id=owner_id))
    session.commit()
    return league


def join_league(session: Session, user_id: int, code: str) -> League:
    league = session.query(League).filter(League.code == code.strip().upper()).first()
    if league is None:
        raise NotFound("League with the given code not found.")
    require_pending(league)
    if repository.is_member(session, league.id, user_id):
        raise Conflict("User is already a member of this league.")
    if len(repository.members_of(session, league.id)) >= league.max_players:
        raise BadRequest("League is full.")

    session.add(LeagueMember(league_id=league.id, user_id=user_id))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("User is already a member of this league.")
    return league


def set_manual_pick_order(session: Session, league_id: int, requester_id: int,
                          user_ids: Sequence[int]) -> List[int]:
    """Store the owner's fixed order; an empty list clears it."""
    league = repository.get_league(session, league_id)
    require_owner(league, requester_id)
    require_pending(league)

    members = session.query(LeagueMember).filter(LeagueMember.league_id == league_id).all()
    order = [int(user_id) for user_id in user_ids]
    if order and sorted(order) != sorted(member.user_id for member in members):
        raise BadRequest("Pick order must list every league member exactly once")

    rank = {user_id: position + 1 for position, user_id in enumerate(order)}
    for member in members:
        member.pick_order = rank.get(member.user_id)
    session.commit()
    return order
