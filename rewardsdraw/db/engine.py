import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .utils import resolve_sqlite_url

load_dotenv()

# Repository root; relative SQLite paths are anchored here.
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)


def _enforce_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite ignores REFERENCES/ON DELETE unless enabled per connection.
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create the engine for ``database_url`` (``DB_URL`` when omitted)."""
    url = database_url or DEFAULT_SQLITE_URL
    if url.startswith("sqlite"):
        engine = create_engine(url, echo=echo, future=True)
        _enforce_sqlite_foreign_keys(engine)
    else:
        engine = create_engine(url, echo=echo, future=True, pool_pre_ping=True)
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)
