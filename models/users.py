from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, utcnow

class User(Base):
  __tablename__ = "users"
  id: Mapped[int] = mapped_column(Integer(), primary_key=True)
  username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
  discord_id: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, unique=True)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

  def __str__(self):
    return self.username
