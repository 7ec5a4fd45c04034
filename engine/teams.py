"""Team management for team leagues, gated by the balance check."""

import logging
from typing import Dict, List, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from engine import repository, team_balance
from engine.errors import BadRequest, Conflict, NotFound
from engine.leagues import require_owner, require_pending
from models.league import League, LeagueTeam, TeamMember

logger = logging.getLogger('pickdriver')


def validate_team_change(session: Session, league_id: int, prospective_sizes: Sequence[int]) -> None:
    league = repository.get_league(session, league_id)
    total_players = len(repository.members_of(session, league_id))
    limit = team_balance.max_teams(total_players, repository.constructor_count(session, league.season_id))
    team_balance.validate(total_players, list(prospective_sizes), limit)


def team_sizes(session: Session, league_id: int) -> Dict[int, int]:
    return {team_id: len(members) for team_id, members in repository.teams_of(session, league_id)}


def _require_team_league(session: Session, league_id: int, requester_id: int) -> League:
    league = repository.get_league(session, league_id)
    require_owner(league, requester_id)
    require_pending(league)
    if not league.teams_enabled:
        raise BadRequest("Teams are not enabled in this league")
    if len(repository.members_of(session, league_id)) != league.max_players:
        raise BadRequest("League must be full to manage teams.")
    return league


def _get_team(session: Session, team_id: int) -> LeagueTeam:
    team = session.query(LeagueTeam).filter(LeagueTeam.id == team_id).first()
    if team is None:
        raise NotFound("Team not found")
    return team


def _check_assignable(session: Session, league_id: int, user_id: int) -> None:
    if not repository.is_member(session, league_id, user_id):
        raise BadRequest("User is not a member of this league")
    if repository.team_of_user(session, league_id, user_id) is not None:
        raise Conflict("User is already assigned to a team in this league")


def _commit(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("User is already assigned to a team in this league")


def create_team(session: Session, league_id: int, requester_id: int, name: str,
                user_ids: Sequence[int]) -> LeagueTeam:
    _require_team_league(session, league_id, requester_id)
    if not name or not name.strip():
        raise BadRequest("Team name is required")
    members = [int(user_id) for user_id in user_ids]
    if len(set(members)) != len(members):
        raise BadRequest("Duplicate users in team")
    for user_id in members:
        _check_assignable(session, league_id, user_id)

    sizes = list(team_sizes(session, league_id).values()) + [len(members)]
    validate_team_change(session, league_id, sizes)

    team = LeagueTeam(league_id=league_id, name=name.strip())
    team.members = [TeamMember(user_id=user_id) for user_id in members]
    session.add(team)
    _commit(session)
    logger.info(f"League {league_id}: team {team.id} '{team.name}' created with {members}")
    return team


def assign_user_to_team(session: Session, team_id: int, requester_id: int, user_id: int) -> LeagueTeam:
    team = _get_team(session, team_id)
    _require_team_league(session, team.league_id, requester_id)
    _check_assignable(session, team.league_id, user_id)

    sizes = team_sizes(session, team.league_id)
    sizes[team.id] += 1
    validate_team_change(session, team.league_id, list(sizes.values()))

    session.add(TeamMember(team_id=team.id, user_id=user_id))
    _commit(session)
    return team


def remove_user_from_team(session: Session, team_id: int, requester_id: int, user_id: int) -> LeagueTeam:
    team = _get_team(session, team_id)
    _require_team_league(session, team.league_id, requester_id)
    membership = session.query(TeamMember)\
        .filter(TeamMember.team_id == team.id)\
        .filter(TeamMember.user_id == user_id).first()
    if membership is None:
        raise NotFound("User is not on this team")

    sizes = team_sizes(session, team.league_id)
    sizes[team.id] -= 1
    validate_team_change(session, team.league_id, list(sizes.values()))

    session.delete(membership)
    session.commit()
    return team


def delete_team(session: Session, team_id: int, requester_id: int) -> None:
    """Delete a team together with its memberships."""
    team = _get_team(session, team_id)
    _require_team_league(session, team.league_id, requester_id)
    session.delete(team)
    session.commit()


def list_teams(session: Session, league_id: int) -> List[dict]:
    repository.get_league(session, league_id)
    teams = session.query(LeagueTeam)\
        .filter(LeagueTeam.league_id == league_id)\
        .order_by(LeagueTeam.id.asc()).all()
    return [{
        "id": team.id,
        "name": team.name,
        "members": sorted(member.user_id for member in team.members),
    } for team in teams]
