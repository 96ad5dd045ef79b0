"""Environment-driven settings.

Values are read from the process environment after loading ``.env`` from
the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.engine import ROOT_DIR
from .db.utils import resolve_sqlite_url

NOTIFY_BACKENDS = ("database", "webhook", "none")

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    db_url: str = resolve_sqlite_url("sqlite:///./dev.db", ROOT_DIR)
    db_echo: bool = False
    log_level: str = "INFO"
    notify_backend: str = "database"
    notify_webhook_url: Optional[str] = None
    notify_webhook_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.notify_backend not in NOTIFY_BACKENDS:
            raise ValueError(
                f"NOTIFY_BACKEND must be one of {', '.join(NOTIFY_BACKENDS)}, "
                f"got '{self.notify_backend}'"
            )
        if self.notify_backend == "webhook" and not self.notify_webhook_url:
            raise ValueError("NOTIFY_WEBHOOK_URL must be set when NOTIFY_BACKEND=webhook")
        if self.notify_webhook_timeout <= 0:
            raise ValueError("NOTIFY_WEBHOOK_TIMEOUT must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ`` + ``.env``)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        timeout_raw = environ.get("NOTIFY_WEBHOOK_TIMEOUT", "10")
        try:
            timeout = float(timeout_raw)
        except ValueError as exc:
            raise ValueError(
                f"NOTIFY_WEBHOOK_TIMEOUT must be a number, got '{timeout_raw}'"
            ) from exc

        return cls(
            db_url=resolve_sqlite_url(
                environ.get("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
            ),
            db_echo=_parse_bool(environ.get("DB_ECHO")),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            notify_backend=environ.get("NOTIFY_BACKEND", "database").strip().lower(),
            notify_webhook_url=environ.get("NOTIFY_WEBHOOK_URL") or None,
            notify_webhook_timeout=timeout,
        )
