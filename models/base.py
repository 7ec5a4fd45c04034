from datetime import datetime, timezone
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
  pass


def utcnow() -> datetime:
  # timestamps are stored naive, in UTC
  return datetime.now(timezone.utc).replace(tzinfo=None)
