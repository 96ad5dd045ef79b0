"""Compare the ORM metadata with the configured database.

Exit codes: 0 when they match, 1 when differences are found, 2 on error.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from rewardsdraw.config import Settings
from rewardsdraw.db.engine import make_engine
from rewardsdraw.models import Base


def _print_ops(ops, depth: int = 0) -> None:
    for op in ops:
        print(f"{'  ' * depth}- {op}")
        nested = getattr(op, "ops", None)
        if nested:
            _print_ops(nested, depth + 1)


def main() -> int:
    settings = Settings.from_env()
    engine = make_engine(database_url=settings.db_url)
    target = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check: ERROR for {target}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Schema drift check: ERROR for {target}: no upgrade operations produced.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {target}.")
        return 0
    print(f"Schema drift check: FAILED for {target}:")
    _print_ops(upgrade_ops.ops or [])
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
