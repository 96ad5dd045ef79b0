"""Engine that draws and records a drawing's winner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..exceptions import Conflict, InsufficientEntries
from ..models import Drawing, DrawingEntry, DrawingStatus, User
from ..notifications import NullNotifier, WinnerNotifier
from .ledger import total_quantity
from .lifecycle import ensure_entry_window_closed, ensure_status, transition
from .selection import SystemUniformSource, UniformSource, pick_weighted

logger = logging.getLogger(__name__)


def flush_drawing(session: Session, drawing: Drawing) -> None:
    """Flush pending changes, translating a lost race into :class:`Conflict`."""
    try:
        session.flush()
    except StaleDataError as exc:
        logger.warning("Concurrent modification of drawing %s detected", drawing.id)
        raise Conflict(
            f"Drawing {drawing.id} was modified concurrently; re-fetch and retry"
        ) from exc


@dataclass
class DrawOutcome:
    """Value object describing a completed draw.

    Attributes
    ----------
    drawing : Drawing
        The drawing, now COMPLETED with its winner recorded.
    entry : DrawingEntry
        The winning entry.
    winner : User
        User holding the winning entry.
    ticket : int
        Slot drawn in ``[0, total)``.
    total : int
        Summed entry quantity the draw was made over.
    """

    drawing: Drawing
    entry: DrawingEntry
    winner: User
    ticket: int
    total: int


class DrawingEngine:
    """Performs weighted winner selection and persists the outcome."""

    def __init__(
        self,
        session: Session,
        *,
        source: Optional[UniformSource] = None,
        notifier: Optional[WinnerNotifier] = None,
    ) -> None:
        """Create a drawing engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session used for lookups and persistence.
        source : Optional[UniformSource], default: None
            Randomness for the draw. Typically omitted, in which case the
            operating system's CSPRNG is used.
        notifier : Optional[WinnerNotifier], default: None
            Receives the winner notification. Defaults to a notifier that
            drops the event.
        """

        self._session = session
        self._source = source or SystemUniformSource()
        self._notifier = notifier or NullNotifier()

    def load_entries(self, drawing: Drawing) -> list[DrawingEntry]:
        """Return the drawing's entries in creation order."""
        stmt = (
            select(DrawingEntry)
            .where(DrawingEntry.drawing_id == drawing.id)
            .order_by(DrawingEntry.created_at.asc(), DrawingEntry.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def draw(self, drawing: Drawing, *, now: Optional[datetime] = None) -> DrawOutcome:
        """Select a winner for ``drawing`` and mark it COMPLETED.

        The caller is expected to have loaded ``drawing`` under a row lock in
        the current transaction; the version check on flush catches any
        writer that slipped in regardless.

        Parameters
        ----------
        drawing : Drawing
            Persisted drawing in ACTIVE status.
        now : Optional[datetime], default: None
            Clock override. Must not precede ``end_date``; becomes
            ``draw_date`` unless one was scheduled.

        Returns
        -------
        DrawOutcome
            The updated drawing, the winning entry and the winning user.

        Notes
        -----
        1. Refuse anything but an ACTIVE drawing, so a completed drawing is
           never redrawn, and refuse while entries are still accepted.
        2. Load the entries and gate on ``min_entries`` against the summed
           quantity.
        3. Draw one unit of quantity uniformly; its entry wins.
        4. Write status, winner and draw date, then flush.
        5. Notify the winner. Notification failures are logged only.

        Raises
        ------
        InvalidState
            If the drawing is not ACTIVE or ``now`` is before ``end_date``.
        InsufficientEntries
            If the summed quantity is below ``min_entries``.
        Conflict
            If the drawing row changed since it was loaded.
        """
        ensure_status(drawing, DrawingStatus.ACTIVE, "select a winner")
        now = now or datetime.now(timezone.utc)
        ensure_entry_window_closed(drawing, now)

        entries = self.load_entries(drawing)
        total = total_quantity(entries)
        if total < drawing.min_entries:
            raise InsufficientEntries(
                f"Drawing {drawing.id} has {total} entries; "
                f"{drawing.min_entries} are required to select a winner"
            )

        pick = pick_weighted(entries, self._source, weight=lambda e: e.quantity)
        winning_entry = pick.item

        transition(drawing, DrawingStatus.COMPLETED, winner_entry=winning_entry, now=now)
        self.flush(drawing)

        logger.info(
            "Drawing %s completed: entry %s (user %s) won with ticket %s of %s",
            drawing.id,
            winning_entry.id,
            winning_entry.user_id,
            pick.ticket,
            pick.total,
        )

        self._notify(drawing, winning_entry)
        return DrawOutcome(
            drawing=drawing,
            entry=winning_entry,
            winner=winning_entry.user,
            ticket=pick.ticket,
            total=pick.total,
        )

    def flush(self, drawing: Drawing) -> None:
        flush_drawing(self._session, drawing)

    def _notify(self, drawing: Drawing, entry: DrawingEntry) -> None:
        try:
            self._notifier.notify_winner(
                entry.user_id,
                drawing.id,
                drawing.name,
                drawing.prize,
            )
        except Exception:
            logger.exception(
                "Failed to notify user %s about winning drawing %s",
                entry.user_id,
                drawing.id,
            )


__all__ = [
    "DrawOutcome",
    "DrawingEngine",
    "flush_drawing",
]
