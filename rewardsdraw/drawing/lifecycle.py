"""Status transition table for drawings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Optional

from ..db.utils import dt_iso, ensure_utc
from ..exceptions import InvalidArgument, InvalidState
from ..models import Drawing, DrawingEntry, DrawingStatus

TRANSITIONS: Mapping[DrawingStatus, frozenset[DrawingStatus]] = {
    DrawingStatus.DRAFT: frozenset({DrawingStatus.ACTIVE, DrawingStatus.CANCELLED}),
    DrawingStatus.ACTIVE: frozenset({DrawingStatus.COMPLETED, DrawingStatus.CANCELLED}),
    # Administrative reset is the only way back.
    DrawingStatus.COMPLETED: frozenset({DrawingStatus.DRAFT}),
    DrawingStatus.CANCELLED: frozenset(),
}

# Statuses a drawing may be created in.
INITIAL_STATUSES = frozenset({DrawingStatus.DRAFT, DrawingStatus.ACTIVE})

# Statuses in which descriptive fields and entry limits may still be edited.
EDITABLE_STATUSES = frozenset({DrawingStatus.DRAFT, DrawingStatus.ACTIVE})


def can_transition(current: DrawingStatus, target: DrawingStatus) -> bool:
    """Return ``True`` when ``current -> target`` is an allowed transition."""
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: DrawingStatus, target: DrawingStatus) -> None:
    """Raise :class:`InvalidState` unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidState(
            f"Cannot move drawing from {current.value} to {target.value}"
        )


def ensure_status(drawing: Drawing, expected: DrawingStatus, action: str) -> None:
    if drawing.status != expected:
        raise InvalidState(
            f"Drawing must be {expected.value} to {action} "
            f"(current: {drawing.status.value})"
        )


def ensure_entry_window_closed(drawing: Drawing, now: datetime) -> None:
    """Refuse to draw while the drawing still accepts entries."""
    if ensure_utc(now) < ensure_utc(drawing.end_date):
        raise InvalidState(
            f"Drawing {drawing.id} accepts entries until {dt_iso(drawing.end_date)}; "
            "a winner cannot be drawn before then"
        )


def ensure_initial_status(status: DrawingStatus) -> None:
    if status not in INITIAL_STATUSES:
        raise InvalidArgument(
            f"Drawings can only be created as DRAFT or ACTIVE, not {status.value}"
        )


def transition(
    drawing: Drawing,
    target: DrawingStatus,
    *,
    winner_entry: Optional[DrawingEntry] = None,
    now: Optional[datetime] = None,
) -> Drawing:
    """Move ``drawing`` to ``target`` and keep the winner reference consistent.

    Parameters
    ----------
    drawing : Drawing
        Drawing to mutate in place. Nothing is flushed.
    target : DrawingStatus
        Status to move to. Must be reachable from the current status.
    winner_entry : Optional[DrawingEntry], default: None
        Required when (and only when) ``target`` is COMPLETED.
    now : Optional[datetime], default: None
        Clock override for completion. Becomes ``draw_date`` unless one was
        scheduled, and must not precede ``end_date``.

    Returns
    -------
    Drawing
        The same drawing, for chaining.

    Raises
    ------
    InvalidState
        If the transition is not in :data:`TRANSITIONS`, or on completion
        before ``end_date``.
    InvalidArgument
        If a winner is missing for COMPLETED or supplied for any other target.
    """
    ensure_transition(drawing.status, target)

    if target == DrawingStatus.COMPLETED:
        if winner_entry is None:
            raise InvalidArgument("A winning entry is required to complete a drawing")
        if winner_entry.drawing_id is not None and drawing.id is not None:
            if winner_entry.drawing_id != drawing.id:
                raise InvalidArgument("Winning entry belongs to a different drawing")
        now = now or datetime.now(timezone.utc)
        ensure_entry_window_closed(drawing, now)
        drawing.winner_entry = winner_entry
        if not drawing.draw_date_scheduled:
            drawing.draw_date = now
    else:
        if winner_entry is not None:
            raise InvalidArgument(
                f"A winner can only be recorded when completing a drawing, not {target.value}"
            )
        drawing.winner_entry = None
        if not drawing.draw_date_scheduled:
            # Only a scheduled draw date outlives the draw it was recorded for.
            drawing.draw_date = None

    drawing.status = target
    return drawing


__all__ = [
    "EDITABLE_STATUSES",
    "INITIAL_STATUSES",
    "TRANSITIONS",
    "can_transition",
    "ensure_entry_window_closed",
    "ensure_initial_status",
    "ensure_status",
    "ensure_transition",
    "transition",
]
