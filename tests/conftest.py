"""Shared fixtures: an in-memory database seeded with a season, users and leagues."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings
from models.base import Base
from models.draft import DRAFT_OPEN, RaceDraft
from models.league import LEAGUE_ACTIVE, LEAGUE_PENDING, League, LeagueMember, LeagueTeam, TeamMember
from models.season import Constructor, Driver, Race, Season
from models.users import User


# ── Calendar ─────────────────────────────────────────────────────────

FP1 = datetime(2030, 3, 14, 1, 30)
FIRST_HALF_DEADLINE = FP1 - timedelta(hours=36)
# comfortably before both deadlines
NOW = FP1 - timedelta(days=3)

DRIVER_ROWS = [
    ("Max", "Verstappen", 1, "VER", "Red Bull"),
    ("Yuki", "Tsunoda", 22, "TSU", "Red Bull"),
    ("Lando", "Norris", 4, "NOR", "McLaren"),
    ("Oscar", "Piastri", 81, "PIA", "McLaren"),
    ("Charles", "Leclerc", 16, "LEC", "Ferrari"),
    ("Lewis", "Hamilton", 44, "HAM", "Ferrari"),
    ("George", "Russell", 63, "RUS", "Mercedes"),
    ("Kimi", "Antonelli", 12, "ANT", "Mercedes"),
    ("Fernando", "Alonso", 14, "ALO", "Aston Martin"),
    ("Lance", "Stroll", 18, "STR", "Aston Martin"),
]


@dataclass
class SeasonData:
    season: Season
    constructors: List[Constructor]
    drivers: List[Driver]
    races: List[Race]

    @property
    def driver_ids(self) -> List[int]:
        return [driver.id for driver in self.drivers]


# ── Seed helpers ─────────────────────────────────────────────────────


def seed_season(session, constructor_count=5, race_fp1s=None):
    """Active season with ten drivers and (by default) two future races."""
    season = Season(year=2030, active=True)
    session.add(season)
    session.flush()

    constructors = {}
    for name in dict.fromkeys(row[4] for row in DRIVER_ROWS):
        if len(constructors) == constructor_count:
            break
        constructors[name] = Constructor(season_id=season.id, name=name)
        session.add(constructors[name])
    session.flush()

    drivers = []
    for first, last, number, code, team in DRIVER_ROWS:
        constructor = constructors.get(team)
        driver = Driver(season_id=season.id, constructor_id=constructor.id if constructor else None,
                        first_name=first, last_name=last, driver_number=number, driver_code=code)
        session.add(driver)
        drivers.append(driver)

    if race_fp1s is None:
        race_fp1s = [FP1, FP1 + timedelta(days=14)]
    races = []
    for round_num, fp1 in enumerate(race_fp1s, start=1):
        race = Race(season_id=season.id, round=round_num, name=f"Grand Prix {round_num}",
                    fp1_time=fp1, race_time=fp1 + timedelta(days=2) if fp1 else None)
        session.add(race)
        races.append(race)
    session.commit()
    return SeasonData(season=season, constructors=list(constructors.values()), drivers=drivers, races=races)


def seed_users(session, count, prefix="player"):
    start = session.query(User).count()
    users = [User(username=f"{prefix}{i}", discord_id=str(1000 + start + i)) for i in range(1, count + 1)]
    session.add_all(users)
    session.commit()
    return [user.id for user in users]


def seed_league(session, season, user_ids, max_players=None, status=LEAGUE_PENDING, teams_enabled=False,
                bans_enabled=False, mirror_picks_enabled=False, code="ABC234"):
    league = League(name="Test League", code=code, status=status, owner_id=user_ids[0], season_id=season.id,
                    max_players=max_players or len(user_ids), teams_enabled=teams_enabled,
                    bans_enabled=bans_enabled, mirror_picks_enabled=mirror_picks_enabled)
    session.add(league)
    session.flush()
    for user_id in user_ids:
        session.add(LeagueMember(league_id=league.id, user_id=user_id))
    session.commit()
    return league


def seed_team(session, league, name, user_ids):
    team = LeagueTeam(league_id=league.id, name=name)
    team.members = [TeamMember(user_id=user_id) for user_id in user_ids]
    session.add(team)
    session.commit()
    return team


def seed_draft(session, league, race, pick_order, mirror_picks=False, current_pick_index=0):
    """An already-activated draft with a fixed pick order."""
    league.status = LEAGUE_ACTIVE
    draft = RaceDraft(league_id=league.id, race_id=race.id, pick_order=list(pick_order),
                      current_pick_index=current_pick_index, mirror_picks=mirror_picks, status=DRAFT_OPEN)
    session.add(draft)
    session.commit()
    return draft


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify_turn(self, user_id, league_id, race_id, draft_id, pick_index):
        self.calls.append((user_id, pick_index))


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def db_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture
def season(session):
    return seed_season(session)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def three_player_draft(session, season):
    """Users A, B, C drafting race 1 in order [A, B, C]."""
    users = seed_users(session, 3)
    league = seed_league(session, season.season, users, bans_enabled=True)
    draft = seed_draft(session, league, season.races[0], users)
    return league, draft, users
