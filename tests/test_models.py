import json
import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from rewardsdraw.models import (
    Base,
    Drawing,
    DrawingEntry,
    DrawingStatus,
    EntryType,
    Notification,
    Organization,
    User,
    UserRole,
)


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.now = datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)

    def tearDown(self):
        self.engine.dispose()

    def _drawing(self, org: Organization, **overrides) -> Drawing:
        params = dict(
            name="Spring Raffle",
            prize="Gift card",
            start_date=self.now,
            end_date=self.now + timedelta(days=14),
            organization=org,
        )
        params.update(overrides)
        return Drawing(**params)

    def test_user_email_is_normalized(self):
        with self.Session.begin() as session:
            user = User("  Alice@Example.COM ")
            session.add(user)
            session.flush()
            self.assertEqual(user.email, "alice@example.com")
            self.assertEqual(user.role, UserRole.CLIENT)
            self.assertIs(User.get_by_email(session, "ALICE@example.com"), user)
            self.assertIsNone(User.get_by_email(session, "bob@example.com"))

        with self.assertRaises(ValueError):
            User("   ")

    def test_user_roles(self):
        self.assertTrue(User("a@x.io", role=UserRole.SUPER_ADMIN).is_super_admin)
        admin = User("b@x.io", role=UserRole.ADMIN)
        self.assertTrue(admin.is_admin)
        self.assertFalse(admin.is_super_admin)
        self.assertFalse(User("c@x.io").is_admin)

    def test_duplicate_email_rejected(self):
        with self.Session() as session:
            session.add_all([User("dup@example.com"), User("DUP@example.com")])
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_organization_lookup(self):
        with self.Session.begin() as session:
            org = Organization(name="Acme")
            session.add(org)
            session.flush()
            self.assertIs(Organization.get_by_name(session, "Acme"), org)
            self.assertIsNone(Organization.get_by_name(session, "Globex"))

    def test_drawing_defaults(self):
        with self.Session.begin() as session:
            drawing = self._drawing(Organization(name="Acme"))
            session.add(drawing)
            session.flush()
            self.assertEqual(drawing.status, DrawingStatus.ACTIVE)
            self.assertEqual(drawing.min_entries, 1)
            self.assertIsNone(drawing.max_entries)
            self.assertEqual(drawing.version, 1)
            self.assertIsNone(drawing.winner)
            self.assertEqual(drawing.total_entries, 0)

    def test_entry_quantity_must_be_positive(self):
        with self.Session() as session:
            org = Organization(name="Acme")
            drawing = self._drawing(org)
            user = User("member@example.com", organization=org)
            session.add(DrawingEntry(drawing=drawing, user=user, quantity=0))
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_min_entries_must_be_positive(self):
        with self.Session() as session:
            session.add(self._drawing(Organization(name="Acme"), min_entries=0))
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_end_date_after_start_date(self):
        with self.Session() as session:
            session.add(
                self._drawing(
                    Organization(name="Acme"), end_date=self.now - timedelta(days=1)
                )
            )
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_draw_date_not_before_end_date(self):
        with self.Session() as session:
            session.add(
                self._drawing(
                    Organization(name="Acme"), draw_date=self.now + timedelta(days=13)
                )
            )
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_drawing_to_json(self):
        with self.Session.begin() as session:
            org = Organization(name="Acme")
            alice = User("alice@example.com", name="Alice", organization=org)
            bob = User("bob@example.com", name="Bob", organization=org)
            drawing = self._drawing(org, max_entries=10, rules="One per referral")
            first = DrawingEntry(drawing=drawing, user=alice, quantity=2)
            second = DrawingEntry(
                drawing=drawing, user=bob, entry_type=EntryType.REFERRAL
            )
            session.add_all([first, second])
            session.flush()

            drawing.status = DrawingStatus.COMPLETED
            drawing.winner_entry = second
            drawing.draw_date = self.now + timedelta(days=15)
            session.flush()

            data = drawing.to_json(include_entries=True)
            self.assertEqual(data["status"], "COMPLETED")
            self.assertEqual(data["start_date"], "2026-04-01T09:00:00+00:00")
            self.assertEqual(data["draw_date"], "2026-04-16T09:00:00+00:00")
            self.assertFalse(data["draw_date_scheduled"])
            self.assertEqual(data["total_entries"], 3)
            self.assertEqual(data["max_entries"], 10)
            self.assertEqual(data["rules"], "One per referral")
            self.assertEqual(data["winner_entry_id"], second.id)
            self.assertEqual(
                data["winner"], {"id": bob.id, "name": "Bob", "email": "bob@example.com"}
            )
            self.assertEqual(
                [(e["user_id"], e["quantity"], e["entry_type"]) for e in data["entries"]],
                [(alice.id, 2, "MANUAL"), (bob.id, 1, "REFERRAL")],
            )

            self.assertEqual(json.loads(drawing.to_json_str()), drawing.to_json())
            self.assertNotIn("entries", drawing.to_json())

    def test_notifications_for_user(self):
        with self.Session.begin() as session:
            user = User("member@example.com")
            session.add(user)
            session.flush()
            older = Notification(
                user=user,
                type="DRAWING_WON",
                title="Old",
                message="old",
                read=True,
                created_at=self.now,
            )
            newer = Notification(
                user=user,
                type="DRAWING_WON",
                title="New",
                message="new",
                data={"drawing_id": 1},
                created_at=self.now + timedelta(hours=1),
            )
            session.add_all([older, newer])
            session.flush()

            self.assertEqual(Notification.for_user(session, user.id), [newer, older])
            self.assertEqual(
                Notification.for_user(session, user.id, unread_only=True), [newer]
            )

    def test_organization_scoped_listing(self):
        with self.Session.begin() as session:
            acme = Organization(name="Acme")
            globex = Organization(name="Globex")
            old = self._drawing(acme, created_at=self.now)
            new = self._drawing(acme, name="Summer Raffle", created_at=self.now + timedelta(days=1))
            other = self._drawing(globex)
            session.add_all([old, new, other])
            session.flush()

            self.assertEqual(Drawing.for_organization(session, acme.id), [new, old])
            self.assertEqual(Drawing.for_organization(session, globex.id), [other])


if __name__ == "__main__":
    unittest.main()
