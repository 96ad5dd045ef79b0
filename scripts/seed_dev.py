from datetime import datetime, timedelta, timezone

from rewardsdraw.config import Settings
from rewardsdraw.db.engine import get_sessionmaker, make_engine
from rewardsdraw.models import (
    Base,
    EntryType,
    Organization,
    User,
    UserRole,
)
from rewardsdraw.workflows import add_entry, create_drawing


def main() -> None:
    """Reset the development database and fill it with sample data."""
    settings = Settings.from_env()
    engine = make_engine(database_url=settings.db_url, echo=settings.db_echo)

    # drawings <-> drawing_entries reference each other; SQLite cannot drop
    # them in order with foreign keys enforced.
    with engine.connect() as conn:
        if engine.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        if engine.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()

    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        acme = Organization(name="Acme Dental")
        session.add(acme)
        session.flush()

        root = User("root@example.com", role=UserRole.SUPER_ADMIN, name="Platform Owner")
        admin = User("admin@acme.example", role=UserRole.ADMIN, name="Acme Admin", organization=acme)
        alice = User("alice@example.com", name="Alice", organization=acme)
        bob = User("bob@example.com", name="Bob", organization=acme)
        carol = User("carol@example.com", name="Carol", organization=acme)
        session.add_all([root, admin, alice, bob, carol])
        session.flush()

        drawing = create_drawing(
            session,
            admin,
            name="Spring Referral Raffle",
            description="Every referral that books an appointment earns an entry.",
            prize="Electric toothbrush",
            prize_details="One premium electric toothbrush, shipped to the winner.",
            rules="One entry per converted referral. Staff are not eligible.",
            start_date=now - timedelta(days=30),
            end_date=now - timedelta(hours=1),
            min_entries=3,
            max_entries=100,
        )

        add_entry(session, admin, drawing.id, alice.id, quantity=2)
        add_entry(session, None, drawing.id, bob.id, entry_type=EntryType.REFERRAL)
        add_entry(session, None, drawing.id, carol.id, quantity=3, entry_type=EntryType.REFERRAL)

        print(f"Seeded organization {acme.id} with drawing {drawing.id}.")

    engine.dispose()


if __name__ == "__main__":
    main()
