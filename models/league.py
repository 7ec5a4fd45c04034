from datetime import datetime
from typing import List, Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, utcnow

LEAGUE_PENDING = "pending"
LEAGUE_ACTIVE = "active"


class League(Base):
  __tablename__ = "leagues"

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
  status: Mapped[str] = mapped_column(String(20), nullable=False, default=LEAGUE_PENDING)
  owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
  season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
  max_players: Mapped[int] = mapped_column(Integer(), nullable=False, default=20)
  teams_enabled: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  bans_enabled: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  mirror_picks_enabled: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  initial_race_round: Mapped[Optional[int]] = mapped_column(Integer(), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

  owner = relationship("User")
  season = relationship("Season")
  members: Mapped[List["LeagueMember"]] = relationship(back_populates="league")

  @property
  def is_pending(self) -> bool:
    return self.status == LEAGUE_PENDING

  def __str__(self):
    return self.name

class LeagueMember(Base):
  __tablename__ = "league_members"
  __table_args__ = (UniqueConstraint("league_id", "user_id"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
  user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
  pick_order: Mapped[Optional[int]] = mapped_column(Integer(), nullable=True) # manual rank set by the owner
  joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

  league: Mapped["League"] = relationship(back_populates="members")
  user = relationship("User")

class LeagueTeam(Base):
  __tablename__ = "league_teams"

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

  league = relationship("League")
  members: Mapped[List["TeamMember"]] = relationship(back_populates="team", cascade="all, delete-orphan")

  def __str__(self):
    return self.name

class TeamMember(Base):
  __tablename__ = "team_members"
  __table_args__ = (UniqueConstraint("team_id", "user_id"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  team_id: Mapped[int] = mapped_column(ForeignKey("league_teams.id", ondelete="CASCADE"), nullable=False)
  user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

  team: Mapped["LeagueTeam"] = relationship(back_populates="members")
  user = relationship("User")
