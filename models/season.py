from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base


class Season(Base):
  __tablename__ = "seasons"

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  year: Mapped[int] = mapped_column(Integer(), nullable=False, unique=True)
  active: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)

  def __str__(self):
    return str(self.year)

class Constructor(Base):
  __tablename__ = "constructors"
  __table_args__ = (UniqueConstraint("season_id", "name"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
  name: Mapped[str] = mapped_column(String(100), nullable=False)

  season = relationship("Season")

class Driver(Base):
  __tablename__ = "drivers"
  __table_args__ = (UniqueConstraint("season_id", "driver_number"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
  constructor_id: Mapped[Optional[int]] = mapped_column(ForeignKey("constructors.id"), nullable=True)
  first_name: Mapped[str] = mapped_column(String(50), nullable=False)
  last_name: Mapped[str] = mapped_column(String(50), nullable=False)
  driver_number: Mapped[int] = mapped_column(Integer(), nullable=False)
  driver_code: Mapped[str] = mapped_column(String(3), nullable=False)

  season = relationship("Season")
  constructor = relationship("Constructor")

  def __str__(self):
    return f"{self.first_name} {self.last_name} ({self.driver_code})"

class Race(Base):
  __tablename__ = "races"
  __table_args__ = (UniqueConstraint("season_id", "round"),)

  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
  round: Mapped[int] = mapped_column(Integer(), nullable=False)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  completed: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
  fp1_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
  race_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

  season = relationship("Season")

  @property
  def start_time(self) -> Optional[datetime]:
    return self.race_time if self.race_time is not None else self.fp1_time

  def has_started(self, now: datetime) -> bool:
    start = self.start_time
    return start is not None and start < now

  def __str__(self):
    return f"Round {self.round}: {self.name}"
