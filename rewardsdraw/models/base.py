from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

from rewardsdraw.db.metadata import metadata_obj

# 64-bit keys in production; SQLite only autoincrements INTEGER PRIMARY KEY.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    """Column default for timestamps, always timezone-aware."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = metadata_obj
