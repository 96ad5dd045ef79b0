"""Select the winner of a drawing from the command line.

Example::

    python scripts/draw_winner.py 1 --as admin@acme.example
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rewardsdraw.config import Settings
from rewardsdraw.db.engine import get_sessionmaker, make_engine
from rewardsdraw.exceptions import DrawingError
from rewardsdraw.models import User
from rewardsdraw.notifications import notifier_from_settings
from rewardsdraw.workflows import run_with_retry, select_winner

logger = logging.getLogger("rewardsdraw.scripts.draw_winner")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("drawing_id", type=int, help="ID of the ACTIVE drawing")
    parser.add_argument(
        "--as",
        dest="actor_email",
        required=True,
        help="email of the administrator performing the draw",
    )
    parser.add_argument(
        "--attempts",
        type=int,
        default=3,
        help="retries when the drawing is modified concurrently (default: 3)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    engine = make_engine(database_url=settings.db_url, echo=settings.db_echo)
    Session = get_sessionmaker(engine)

    def _draw(session):
        actor = User.get_by_email(session, args.actor_email)
        if actor is None:
            raise SystemExit(f"No user with email {args.actor_email}")
        notifier = notifier_from_settings(settings, session)
        outcome = select_winner(session, actor, args.drawing_id, notifier=notifier)
        return outcome.drawing.to_json()

    try:
        result = run_with_retry(Session, _draw, attempts=args.attempts)
    except DrawingError as exc:
        logger.error("Draw failed: %s", exc)
        print(json.dumps(exc.to_json()), file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
