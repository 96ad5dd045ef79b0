import json
import unittest
from datetime import datetime, timedelta, timezone

import requests
from sqlalchemy.orm import sessionmaker

from rewardsdraw.config import Settings
from rewardsdraw.db.engine import make_engine
from rewardsdraw.models import (
    Base,
    Drawing,
    DrawingStatus,
    Notification,
    Organization,
    User,
    UserRole,
)
from rewardsdraw.notifications import (
    DatabaseNotifier,
    NullNotifier,
    WebhookNotifier,
    notifier_from_settings,
    winner_message,
    winner_payload,
)
from rewardsdraw.workflows import add_entry, create_drawing, select_winner


class DummyResponse:
    def __init__(self, json_data=None, status_code: int = 200):
        self._json = json_data
        self.status_code = status_code
        self.content = json.dumps(json_data).encode() if json_data is not None else b""

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class DummySession:
    def __init__(self, response: DummyResponse):
        self.response = response
        self.calls = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "json": json,
                "timeout": timeout,
            }
        )
        return self.response


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify_winner(self, user_id, drawing_id, drawing_name, prize_description):
        self.calls.append((user_id, drawing_id, drawing_name, prize_description))


class ExplodingNotifier:
    def notify_winner(self, user_id, drawing_id, drawing_name, prize_description):
        raise RuntimeError("push gateway unavailable")


class PayloadTests(unittest.TestCase):
    def test_message_text(self):
        self.assertEqual(
            winner_message("Spring Raffle", "Gift card"),
            'You won the "Spring Raffle" drawing! Prize: Gift card',
        )

    def test_payload_shape(self):
        payload = winner_payload(7, 3, "Spring Raffle", "Gift card")
        self.assertEqual(payload["type"], "DRAWING_WON")
        self.assertEqual(payload["user_id"], 7)
        self.assertEqual(payload["title"], "Congratulations! You won a drawing!")
        self.assertEqual(
            payload["data"],
            {"drawing_id": 3, "drawing_name": "Spring Raffle", "prize": "Gift card"},
        )


class WebhookNotifierTests(unittest.TestCase):
    def test_posts_payload_as_json(self):
        session = DummySession(DummyResponse({"ok": True}))
        notifier = WebhookNotifier(
            "https://hooks.example.com/winners",
            timeout=3,
            session=session,
            headers={"Authorization": "Bearer token"},
        )

        notifier.notify_winner(7, 3, "Spring Raffle", "Gift card")

        self.assertEqual(len(session.calls), 1)
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://hooks.example.com/winners")
        self.assertEqual(call["timeout"], 3)
        self.assertEqual(call["headers"]["Authorization"], "Bearer token")
        self.assertEqual(call["headers"]["Accept"], "application/json")
        self.assertEqual(call["json"], winner_payload(7, 3, "Spring Raffle", "Gift card"))

    def test_http_errors_propagate(self):
        session = DummySession(DummyResponse(status_code=502))
        notifier = WebhookNotifier("https://hooks.example.com/winners", session=session)
        with self.assertRaises(requests.HTTPError):
            notifier.notify_winner(7, 3, "Spring Raffle", "Gift card")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            WebhookNotifier("")


class NotifierFromSettingsTests(unittest.TestCase):
    def test_backends(self):
        self.assertIsInstance(
            notifier_from_settings(Settings(notify_backend="none")), NullNotifier
        )

        with self.assertRaises(ValueError):
            notifier_from_settings(Settings(notify_backend="database"))

        engine = make_engine("sqlite+pysqlite:///:memory:")
        try:
            with sessionmaker(bind=engine)() as session:
                notifier = notifier_from_settings(Settings(), session)
                self.assertIsInstance(notifier, DatabaseNotifier)
        finally:
            engine.dispose()

        webhook = notifier_from_settings(
            Settings(
                notify_backend="webhook",
                notify_webhook_url="https://hooks.example.com/winners",
                notify_webhook_timeout=2.5,
            )
        )
        self.assertIsInstance(webhook, WebhookNotifier)
        self.assertEqual(webhook.url, "https://hooks.example.com/winners")
        self.assertEqual(webhook.timeout, 2.5)


class WinnerNotificationTests(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        now = datetime.now(timezone.utc)

        with self.Session.begin() as session:
            org = Organization(name="Acme")
            self.admin = User("admin@acme.example", role=UserRole.ADMIN, organization=org)
            self.member = User("member@acme.example", organization=org)
            session.add_all([org, self.admin, self.member])
            session.flush()
            drawing = create_drawing(
                session,
                self.admin,
                name="Spring Raffle",
                prize="Gift card",
                start_date=now - timedelta(days=7),
                end_date=now - timedelta(hours=1),
            )
            add_entry(session, self.admin, drawing.id, self.member.id, quantity=3)
            self.drawing_id = drawing.id

    def tearDown(self):
        self.engine.dispose()

    def test_default_notifier_stores_in_app_notification(self):
        with self.Session.begin() as session:
            select_winner(session, self.admin, self.drawing_id)

        with self.Session() as session:
            notifications = Notification.for_user(session, self.member.id)
            self.assertEqual(len(notifications), 1)
            notification = notifications[0]
            self.assertEqual(notification.type, "DRAWING_WON")
            self.assertEqual(notification.title, "Congratulations! You won a drawing!")
            self.assertEqual(
                notification.message,
                'You won the "Spring Raffle" drawing! Prize: Gift card',
            )
            self.assertEqual(notification.data["drawing_id"], self.drawing_id)
            self.assertFalse(notification.read)
            self.assertEqual(
                len(Notification.for_user(session, self.member.id, unread_only=True)), 1
            )

    def test_notifier_receives_winner_details(self):
        notifier = RecordingNotifier()
        with self.Session.begin() as session:
            select_winner(session, self.admin, self.drawing_id, notifier=notifier)

        self.assertEqual(
            notifier.calls,
            [(self.member.id, self.drawing_id, "Spring Raffle", "Gift card")],
        )

    def test_notification_failure_keeps_the_draw(self):
        with self.Session.begin() as session:
            with self.assertLogs("rewardsdraw.drawing.engine", level="ERROR") as logs:
                outcome = select_winner(
                    session, self.admin, self.drawing_id, notifier=ExplodingNotifier()
                )
            self.assertEqual(outcome.winner.id, self.member.id)
        self.assertTrue(any("Failed to notify" in line for line in logs.output))

        with self.Session() as session:
            drawing = session.get(Drawing, self.drawing_id)
            self.assertEqual(drawing.status, DrawingStatus.COMPLETED)
            self.assertIsNotNone(drawing.winner_entry_id)
            self.assertEqual(Notification.for_user(session, self.member.id), [])

    def test_webhook_failure_keeps_the_draw(self):
        session_http = DummySession(DummyResponse(status_code=500))
        notifier = WebhookNotifier("https://hooks.example.com/winners", session=session_http)
        with self.Session.begin() as session:
            with self.assertLogs("rewardsdraw.drawing.engine", level="ERROR"):
                select_winner(session, self.admin, self.drawing_id, notifier=notifier)

        self.assertEqual(len(session_http.calls), 1)
        with self.Session() as session:
            drawing = session.get(Drawing, self.drawing_id)
            self.assertEqual(drawing.status, DrawingStatus.COMPLETED)


if __name__ == "__main__":
    unittest.main()
