from datetime import datetime
from typing import List, Optional
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, utcnow

DRAFT_OPEN = "open"
DRAFT_COMPLETE = "complete"


class RaceDraft(Base):
  __tablename__ = "race_drafts"
  __table_args__ = (UniqueConstraint("league_id", "race_id"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
  race_id: Mapped[int] = mapped_column(ForeignKey("races.id", ondelete="CASCADE"), nullable=False)
  pick_order: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
  current_pick_index: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
  mirror_picks: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  status: Mapped[str] = mapped_column(String(20), nullable=False, default=DRAFT_OPEN, index=True)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

  league = relationship("League")
  race = relationship("Race")

  @property
  def is_complete(self) -> bool:
    return self.current_pick_index >= len(self.pick_order)

  @property
  def current_user_id(self) -> Optional[int]:
    if self.is_complete:
      return None
    return self.pick_order[self.current_pick_index]

class PlayerPick(Base):
  __tablename__ = "player_picks"

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  draft_id: Mapped[int] = mapped_column(ForeignKey("race_drafts.id", ondelete="CASCADE"), nullable=False, index=True)
  user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
  driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id"), nullable=False, index=True)
  is_mirror_pick: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  is_banned: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  banned_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
  banned_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
  is_autopick: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  picked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

  draft = relationship("RaceDraft")
  driver = relationship("Driver")
  user = relationship("User", foreign_keys=[user_id])

  def __str__(self):
    state = "banned" if self.is_banned else "active"
    return f"Driver {self.driver_id} picked by {self.user_id} in draft {self.draft_id} ({state})"

# only one valid (non-banned) pick per (draft, user, mirror flag) and per (draft, driver)
Index("unique_valid_pick", PlayerPick.draft_id, PlayerPick.user_id, PlayerPick.is_mirror_pick,
      unique=True,
      postgresql_where=text("is_banned = false"),
      sqlite_where=text("is_banned = 0"))
Index("unique_driver_pick_per_draft", PlayerPick.draft_id, PlayerPick.driver_id,
      unique=True,
      postgresql_where=text("is_banned = false"),
      sqlite_where=text("is_banned = 0"))

class BanCredit(Base):
  __tablename__ = "ban_credits"
  __table_args__ = (UniqueConstraint("draft_id", "scope_id", "is_team_scope"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  draft_id: Mapped[int] = mapped_column(ForeignKey("race_drafts.id", ondelete="CASCADE"), nullable=False)
  scope_id: Mapped[int] = mapped_column(Integer(), nullable=False) # user id, or team id when is_team_scope
  is_team_scope: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  bans_remaining: Mapped[int] = mapped_column(Integer(), nullable=False)

  draft = relationship("RaceDraft")

class PlayerAutopick(Base):
  __tablename__ = "player_autopicks"
  __table_args__ = (UniqueConstraint("league_id", "user_id"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
  user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
  driver_order: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

  league = relationship("League")
  user = relationship("User")
