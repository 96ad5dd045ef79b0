import logging
from typing import Any, Mapping, Optional

import requests

from .emitter import winner_payload

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Forward winner notifications to an HTTP endpoint as JSON."""

    def __init__(
        self,
        url: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        if not url:
            raise ValueError("Webhook URL must not be empty")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json", **(headers or {})}

    def _request(self, method: str, *, json: Optional[dict] = None) -> Any:
        r = self.session.request(
            method=method.upper(),
            url=self.url,
            headers=self.headers,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    def notify_winner(
        self,
        user_id: int,
        drawing_id: int,
        drawing_name: str,
        prize_description: str,
    ) -> None:
        payload = winner_payload(user_id, drawing_id, drawing_name, prize_description)
        # Do not log the message body; it may contain prize details.
        logger.debug("Posting winner notification for drawing %s", drawing_id)
        self._request("POST", json=payload)
