"""Notification emitters used as side effects of winner selection."""

from .emitter import (
    DatabaseNotifier,
    NullNotifier,
    WinnerNotifier,
    notifier_from_settings,
    winner_message,
    winner_payload,
)
from .webhook import WebhookNotifier

__all__ = [
    "DatabaseNotifier",
    "NullNotifier",
    "WebhookNotifier",
    "WinnerNotifier",
    "notifier_from_settings",
    "winner_message",
    "winner_payload",
]
