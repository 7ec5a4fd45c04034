"""Query helpers shared by the draft operations.

Each helper takes an open ``Session``; none of them commit.
"""

from typing import List, Optional, Tuple

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from engine.errors import NotFound
from models.base import utcnow
from models.draft import DRAFT_COMPLETE, DRAFT_OPEN, PlayerPick, RaceDraft
from models.league import League, LeagueMember, LeagueTeam, TeamMember
from models.season import Constructor, Driver, Race


def get_league(session: Session, league_id: int) -> League:
    league = session.query(League).filter(League.id == league_id).first()
    if league is None:
        raise NotFound("League not found")
    return league


def get_race(session: Session, race_id: int) -> Race:
    race = session.query(Race).filter(Race.id == race_id).first()
    if race is None:
        raise NotFound("Race not found")
    return race


def get_draft(session: Session, league_id: int, race_id: int) -> RaceDraft:
    draft = session.query(RaceDraft)\
        .filter(RaceDraft.league_id == league_id)\
        .filter(RaceDraft.race_id == race_id).first()
    if draft is None:
        raise NotFound("Draft not found")
    return draft


def members_of(session: Session, league_id: int) -> List[int]:
    rows = session.query(LeagueMember.user_id)\
        .filter(LeagueMember.league_id == league_id)\
        .order_by(LeagueMember.id.asc()).all()
    return [row.user_id for row in rows]


def is_member(session: Session, league_id: int, user_id: int) -> bool:
    return session.query(LeagueMember)\
        .filter(LeagueMember.league_id == league_id)\
        .filter(LeagueMember.user_id == user_id).count() > 0


def manual_ranks_of(session: Session, league_id: int) -> dict:
    members = session.query(LeagueMember).filter(LeagueMember.league_id == league_id).all()
    return {member.user_id: member.pick_order for member in members}


def teams_of(session: Session, league_id: int) -> List[Tuple[int, List[int]]]:
    teams = session.query(LeagueTeam)\
        .filter(LeagueTeam.league_id == league_id)\
        .order_by(LeagueTeam.id.asc()).all()
    return [(team.id, sorted(member.user_id for member in team.members)) for team in teams]


def team_of_user(session: Session, league_id: int, user_id: int) -> Optional[int]:
    row = session.query(TeamMember.team_id)\
        .join(LeagueTeam, TeamMember.team_id == LeagueTeam.id)\
        .filter(LeagueTeam.league_id == league_id)\
        .filter(TeamMember.user_id == user_id).first()
    return row.team_id if row else None


def share_team(session: Session, league_id: int, user_a: int, user_b: int) -> bool:
    team_a = team_of_user(session, league_id, user_a)
    return team_a is not None and team_a == team_of_user(session, league_id, user_b)


def constructor_count(session: Session, season_id: int) -> int:
    return session.query(Constructor).filter(Constructor.season_id == season_id).count()


def driver_in_season(session: Session, driver_id: int, season_id: int) -> bool:
    return session.query(Driver)\
        .filter(Driver.id == driver_id)\
        .filter(Driver.season_id == season_id).count() > 0


def active_pick(session: Session, draft_id: int, user_id: int, is_mirror_pick: bool) -> Optional[PlayerPick]:
    return session.query(PlayerPick)\
        .filter(PlayerPick.draft_id == draft_id)\
        .filter(PlayerPick.user_id == user_id)\
        .filter(PlayerPick.is_mirror_pick == is_mirror_pick)\
        .filter(PlayerPick.is_banned == False).first()


def active_picks(session: Session, draft_id: int) -> List[PlayerPick]:
    return session.query(PlayerPick)\
        .filter(PlayerPick.draft_id == draft_id)\
        .filter(PlayerPick.is_banned == False)\
        .order_by(PlayerPick.id.asc()).all()


def picked_driver_ids(session: Session, draft_id: int) -> List[int]:
    return [pick.driver_id for pick in active_picks(session, draft_id)]


def banned_driver_ids(session: Session, draft_id: int, user_id: int) -> List[int]:
    rows = session.query(PlayerPick.driver_id)\
        .filter(PlayerPick.draft_id == draft_id)\
        .filter(PlayerPick.user_id == user_id)\
        .filter(PlayerPick.is_banned == True)\
        .distinct().order_by(PlayerPick.driver_id.asc()).all()
    return [row.driver_id for row in rows]


def has_banned(session: Session, draft_id: int, requester_id: int, target_user_id: int) -> bool:
    return session.query(PlayerPick)\
        .filter(PlayerPick.draft_id == draft_id)\
        .filter(PlayerPick.user_id == target_user_id)\
        .filter(PlayerPick.is_banned == True)\
        .filter(PlayerPick.banned_by == requester_id).count() > 0


def advance_cursor(session: Session, draft: RaceDraft, proposed: int) -> int:
    """Move the draft cursor forward to ``proposed`` but never backwards.

    Returns the stored index after the write.
    """
    session.execute(
        update(RaceDraft)
        .where(RaceDraft.id == draft.id)
        .values(
            current_pick_index=case(
                (RaceDraft.current_pick_index < proposed, proposed),
                else_=RaceDraft.current_pick_index,
            ),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(draft)
    _sync_status(draft)
    return draft.current_pick_index


def rewind_cursor(session: Session, draft: RaceDraft, index: int) -> None:
    draft.current_pick_index = index
    _sync_status(draft)


def _sync_status(draft: RaceDraft) -> None:
    status = DRAFT_COMPLETE if draft.is_complete else DRAFT_OPEN
    if draft.status != status:
        draft.status = status
