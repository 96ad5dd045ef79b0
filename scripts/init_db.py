from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from rewardsdraw.config import Settings
from rewardsdraw.db.engine import make_engine

logger = logging.getLogger("rewardsdraw.scripts.init_db")

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(settings: Settings, target_revision: str = "head") -> None:
    """Apply Alembic migrations up to ``target_revision``."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    logger.info("Upgrading %s to %s", settings.db_url, target_revision)
    command.upgrade(alembic_cfg, target_revision)


def print_tables(settings: Settings) -> None:
    engine = make_engine(database_url=settings.db_url, echo=settings.db_echo)
    try:
        tables = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("Current tables:", ", ".join(tables))


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    upgrade_db(settings)
    print_tables(settings)


if __name__ == "__main__":
    main()
