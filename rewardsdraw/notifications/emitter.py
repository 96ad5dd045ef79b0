"""Winner notification hand-off.

The drawing engine only knows the :class:`WinnerNotifier` interface; the
implementations here either record an in-app notification row or forward
the event to an external HTTP endpoint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

from sqlalchemy.orm import Session

from ..models import Notification
from ..models.notification import DRAWING_WON

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

WINNER_TITLE = "Congratulations! You won a drawing!"


class WinnerNotifier(Protocol):
    def notify_winner(
        self,
        user_id: int,
        drawing_id: int,
        drawing_name: str,
        prize_description: str,
    ) -> None:
        ...


def winner_message(drawing_name: str, prize_description: str) -> str:
    return f'You won the "{drawing_name}" drawing! Prize: {prize_description}'


def winner_payload(
    user_id: int, drawing_id: int, drawing_name: str, prize_description: str
) -> dict[str, Any]:
    """Build the event body shared by every notifier."""
    return {
        "type": DRAWING_WON,
        "user_id": user_id,
        "title": WINNER_TITLE,
        "message": winner_message(drawing_name, prize_description),
        "data": {
            "drawing_id": drawing_id,
            "drawing_name": drawing_name,
            "prize": prize_description,
        },
    }


class NullNotifier:
    """Notifier that drops every event."""

    def notify_winner(
        self,
        user_id: int,
        drawing_id: int,
        drawing_name: str,
        prize_description: str,
    ) -> None:
        logger.debug("Winner notification for drawing %s dropped", drawing_id)


class DatabaseNotifier:
    """Record the winner notification as a :class:`Notification` row.

    The insert runs inside a SAVEPOINT so that a failure here rolls back
    only the notification, never the surrounding draw.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def notify_winner(
        self,
        user_id: int,
        drawing_id: int,
        drawing_name: str,
        prize_description: str,
    ) -> None:
        payload = winner_payload(user_id, drawing_id, drawing_name, prize_description)
        with self._session.begin_nested():
            notification = Notification(
                user_id=user_id,
                type=payload["type"],
                title=payload["title"],
                message=payload["message"],
                data=payload["data"],
            )
            self._session.add(notification)
        logger.info(
            "Stored winner notification %s for user %s (drawing %s)",
            notification.id,
            user_id,
            drawing_id,
        )


def notifier_from_settings(
    settings: "Settings", session: Optional[Session] = None
) -> WinnerNotifier:
    """Return the notifier selected by ``settings.notify_backend``."""
    backend = settings.notify_backend
    if backend == "none":
        return NullNotifier()
    if backend == "database":
        if session is None:
            raise ValueError("The database notifier requires a session")
        return DatabaseNotifier(session)
    if backend == "webhook":
        from .webhook import WebhookNotifier

        if not settings.notify_webhook_url:
            raise ValueError("NOTIFY_WEBHOOK_URL must be set for the webhook notifier")
        return WebhookNotifier(
            settings.notify_webhook_url, timeout=settings.notify_webhook_timeout
        )
    raise ValueError(f"Unknown notification backend '{backend}'")


__all__ = [
    "DatabaseNotifier",
    "NullNotifier",
    "WinnerNotifier",
    "notifier_from_settings",
    "winner_message",
    "winner_payload",
]
