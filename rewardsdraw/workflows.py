import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .authz import can_manage_org, ensure_can_manage, ensure_can_view
from .db.utils import ensure_utc
from .drawing.engine import DrawingEngine, DrawOutcome, flush_drawing
from .drawing.ledger import (
    ensure_capacity,
    quantities_by_user,
    total_quantity,
    validate_quantity,
)
from .drawing.lifecycle import (
    EDITABLE_STATUSES,
    ensure_initial_status,
    ensure_status,
    transition,
)
from .drawing.selection import UniformSource
from .exceptions import (
    CapacityExceeded,
    Conflict,
    CrossOrganization,
    Forbidden,
    InvalidArgument,
    InvalidState,
    NotFound,
)
from .models import (
    Drawing,
    DrawingEntry,
    DrawingStatus,
    EntryType,
    Organization,
    User,
)
from .notifications import DatabaseNotifier, WinnerNotifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "prize",
        "prize_details",
        "rules",
        "start_date",
        "end_date",
        "draw_date",
        "min_entries",
        "max_entries",
    }
)


def _load_drawing(session: Session, drawing_id: int, *, lock: bool = False) -> Drawing:
    """Fetch a drawing or raise :class:`NotFound`.

    With ``lock=True`` the row is selected ``FOR UPDATE`` and the in-memory
    copy is refreshed, so checks that follow see the committed state.
    """
    stmt = select(Drawing).where(Drawing.id == drawing_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    drawing = session.scalar(stmt)
    if drawing is None:
        raise NotFound(f"Drawing {drawing_id} not found")
    return drawing


def _validate_schedule(
    start_date: datetime, end_date: datetime, draw_date: Optional[datetime]
) -> None:
    if start_date is None or end_date is None:
        raise InvalidArgument("start_date and end_date are required")
    start = ensure_utc(start_date)
    end = ensure_utc(end_date)
    if end < start:
        raise InvalidArgument("End date must be after start date")
    if draw_date is not None and ensure_utc(draw_date) < end:
        raise InvalidArgument("Draw date must be after end date")


def _validate_limits(min_entries: int, max_entries: Optional[int]) -> None:
    if isinstance(min_entries, bool) or not isinstance(min_entries, int) or min_entries < 1:
        raise InvalidArgument("min_entries must be an integer of at least 1")
    if max_entries is None:
        return
    if isinstance(max_entries, bool) or not isinstance(max_entries, int) or max_entries < 1:
        raise InvalidArgument("max_entries must be a positive integer when provided")
    if max_entries < min_entries:
        raise InvalidArgument("max_entries must not be lower than min_entries")


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgument(f"{field} is required")
    return value.strip()


def _entries_of(session: Session, drawing_id: int) -> list[DrawingEntry]:
    stmt = (
        select(DrawingEntry)
        .where(DrawingEntry.drawing_id == drawing_id)
        .order_by(DrawingEntry.created_at.asc(), DrawingEntry.id.asc())
    )
    return list(session.scalars(stmt).all())


def create_drawing(
    session: Session,
    actor: User,
    *,
    name: str,
    prize: str,
    start_date: datetime,
    end_date: datetime,
    draw_date: Optional[datetime] = None,
    min_entries: int = 1,
    max_entries: Optional[int] = None,
    status: DrawingStatus = DrawingStatus.ACTIVE,
    description: Optional[str] = None,
    prize_details: Optional[str] = None,
    rules: Optional[str] = None,
    org_id: Optional[int] = None,
) -> Drawing:
    """Create a drawing owned by an organization.

    Administrators create drawings in their own organization. Super-administrators
    may target any organization through ``org_id``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    actor : User
        User performing the action.
    name, prize : str
        Title and short prize description. Both are required.
    start_date, end_date : datetime
        Entry window; ``end_date`` must not precede ``start_date``.
    draw_date : Optional[datetime], default: None
        Scheduled draw time, not before ``end_date``. When omitted the actual
        draw time is recorded at winner selection.
    min_entries : int, default: 1
        Summed quantity required before a winner can be drawn.
    max_entries : Optional[int], default: None
        Cap on the summed quantity; ``None`` means unlimited.
    status : DrawingStatus, default: DrawingStatus.ACTIVE
        Initial status, DRAFT or ACTIVE.
    description, prize_details, rules : Optional[str]
        Free-form text shown to participants.
    org_id : Optional[int], default: None
        Owning organization. Defaults to the actor's organization.

    Returns
    -------
    Drawing
        The flushed drawing with its ``id`` populated.

    Raises
    ------
    InvalidArgument
        For missing fields, inconsistent dates or limits, or a terminal status.
    NotFound
        If the target organization does not exist.
    Forbidden
        If the actor may not manage drawings of the target organization.
    """
    name = _require_text(name, "name")
    prize = _require_text(prize, "prize")
    _validate_schedule(start_date, end_date, draw_date)
    _validate_limits(min_entries, max_entries)
    ensure_initial_status(status)

    target_org_id = org_id if org_id is not None else actor.org_id
    if target_org_id is None:
        raise InvalidArgument("An owning organization is required")
    if not can_manage_org(actor, target_org_id):
        raise Forbidden(
            f"User {actor.id} is not allowed to create drawings for organization {target_org_id}"
        )
    if session.get(Organization, target_org_id) is None:
        raise NotFound(f"Organization {target_org_id} not found")

    drawing = Drawing(
        name=name,
        prize=prize,
        start_date=start_date,
        end_date=end_date,
        draw_date=draw_date,
        min_entries=min_entries,
        max_entries=max_entries,
        status=status,
        description=description,
        prize_details=prize_details,
        rules=rules,
        org_id=target_org_id,
        created_by_id=actor.id,
    )
    session.add(drawing)
    session.flush()

    logger.info(
        "Drawing %s created in organization %s by user %s (status %s)",
        drawing.id,
        target_org_id,
        actor.id,
        status.value,
    )
    return drawing


def get_drawing(session: Session, actor: User, drawing_id: int) -> Drawing:
    """Return a drawing the actor is allowed to see."""
    drawing = _load_drawing(session, drawing_id)
    ensure_can_view(actor, drawing)
    return drawing


def list_drawings(
    session: Session, actor: User, org_id: Optional[int] = None
) -> list[Drawing]:
    """Return drawings visible to ``actor``, newest first.

    Super-administrators see every organization unless ``org_id`` narrows the
    result. Everyone else only sees their own organization.
    """
    if actor.is_super_admin:
        if org_id is not None:
            return Drawing.for_organization(session, org_id)
        stmt = select(Drawing).order_by(Drawing.created_at.desc(), Drawing.id.desc())
        return list(session.scalars(stmt).all())

    if actor.org_id is None:
        raise Forbidden(f"User {actor.id} does not belong to an organization")
    if org_id is not None and org_id != actor.org_id:
        raise Forbidden(
            f"User {actor.id} is not allowed to list drawings of organization {org_id}"
        )
    return Drawing.for_organization(session, actor.org_id)


def _change_status(
    session: Session, actor: User, drawing_id: int, target: DrawingStatus
) -> Drawing:
    drawing = _load_drawing(session, drawing_id, lock=True)
    ensure_can_manage(actor, drawing)
    previous = drawing.status
    transition(drawing, target)
    flush_drawing(session, drawing)
    logger.info(
        "Drawing %s moved from %s to %s by user %s",
        drawing.id,
        previous.value,
        target.value,
        actor.id,
    )
    return drawing


def activate_drawing(session: Session, actor: User, drawing_id: int) -> Drawing:
    """Move a DRAFT drawing to ACTIVE so it accepts entries."""
    return _change_status(session, actor, drawing_id, DrawingStatus.ACTIVE)


def cancel_drawing(session: Session, actor: User, drawing_id: int) -> Drawing:
    """Cancel a DRAFT or ACTIVE drawing. Cancelled drawings are final."""
    return _change_status(session, actor, drawing_id, DrawingStatus.CANCELLED)


def reset_drawing(session: Session, actor: User, drawing_id: int) -> Drawing:
    """Return a COMPLETED drawing to DRAFT and clear its winner.

    Entries are kept; after reactivation a new winner can be drawn from them.
    """
    return _change_status(session, actor, drawing_id, DrawingStatus.DRAFT)


def update_drawing(
    session: Session, actor: User, drawing_id: int, **fields: Any
) -> Drawing:
    """Edit descriptive fields, dates and entry limits of a drawing.

    Only DRAFT and ACTIVE drawings can be edited. Status and winner are never
    changed here; use the lifecycle workflows instead.

    Raises
    ------
    InvalidArgument
        For unknown fields or values breaking the date or limit invariants.
    InvalidState
        If the drawing is COMPLETED or CANCELLED.
    CapacityExceeded
        If a new ``max_entries`` is below the current summed quantity.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidArgument(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    drawing = _load_drawing(session, drawing_id, lock=True)
    ensure_can_manage(actor, drawing)
    if drawing.status not in EDITABLE_STATUSES:
        raise InvalidState(
            f"Drawing {drawing.id} is {drawing.status.value} and can no longer be edited"
        )

    merged = {field: getattr(drawing, field) for field in UPDATABLE_FIELDS}
    merged.update(fields)
    merged["name"] = _require_text(merged["name"], "name")
    merged["prize"] = _require_text(merged["prize"], "prize")
    _validate_schedule(merged["start_date"], merged["end_date"], merged["draw_date"])
    _validate_limits(merged["min_entries"], merged["max_entries"])

    if merged["max_entries"] is not None:
        total = total_quantity(_entries_of(session, drawing.id))
        if merged["max_entries"] < total:
            raise CapacityExceeded(
                f"max_entries {merged['max_entries']} is below the current total of {total}"
            )

    for field in fields:
        setattr(drawing, field, merged[field])
    if "draw_date" in fields:
        drawing.draw_date_scheduled = merged["draw_date"] is not None
    flush_drawing(session, drawing)

    logger.info(
        "Drawing %s updated by user %s: %s", drawing.id, actor.id, ", ".join(sorted(fields))
    )
    return drawing


def delete_drawing(session: Session, actor: User, drawing_id: int) -> None:
    """Delete a drawing together with its entries."""
    drawing = _load_drawing(session, drawing_id, lock=True)
    ensure_can_manage(actor, drawing)
    if drawing.winner_entry is not None:
        # Break the drawing <-> winning entry cycle before the cascade.
        drawing.winner_entry = None
        flush_drawing(session, drawing)
    session.delete(drawing)
    flush_drawing(session, drawing)
    logger.info("Drawing %s deleted by user %s", drawing_id, actor.id)


def add_entry(
    session: Session,
    actor: Optional[User],
    drawing_id: int,
    user_id: int,
    quantity: int = 1,
    entry_type: EntryType = EntryType.MANUAL,
) -> DrawingEntry:
    """Append an entry of ``quantity`` slots for ``user_id`` to a drawing.

    Entries are additive: a user may hold several rows, which are never
    merged. The drawing row is locked and its version bumped, so a winner
    draw running concurrently either sees this entry or fails with
    :class:`Conflict`.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    actor : Optional[User]
        Administrator granting the entry, or ``None`` for automated grants
        (such as referral accrual), which skip the role check.
    drawing_id : int
        Target drawing.
    user_id : int
        User receiving the entry. Must belong to the drawing's organization.
    quantity : int, default: 1
        Number of slots; at least 1.
    entry_type : EntryType, default: EntryType.MANUAL
        How the entry was granted.

    Returns
    -------
    DrawingEntry
        The flushed entry row.

    Raises
    ------
    InvalidArgument
        If ``quantity`` is not a positive integer.
    NotFound
        If the drawing or the user does not exist.
    Forbidden
        If ``actor`` may not manage the drawing.
    InvalidState
        If the drawing is not ACTIVE.
    CrossOrganization
        If the user belongs to another organization.
    CapacityExceeded
        If the entry would push the summed quantity past ``max_entries``.
    Conflict
        If the drawing changed concurrently.
    """
    validate_quantity(quantity)

    drawing = _load_drawing(session, drawing_id, lock=True)
    if actor is not None:
        ensure_can_manage(actor, drawing)
    ensure_status(drawing, DrawingStatus.ACTIVE, "add entries")

    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    if user.org_id != drawing.org_id:
        raise CrossOrganization(
            f"User {user_id} is not a member of organization {drawing.org_id}"
        )

    ensure_capacity(drawing.max_entries, total_quantity(_entries_of(session, drawing.id)), quantity)

    entry = DrawingEntry(
        drawing=drawing,
        user=user,
        quantity=quantity,
        entry_type=entry_type,
    )
    session.add(entry)
    drawing.updated_at = datetime.now(timezone.utc)
    flush_drawing(session, drawing)

    logger.info(
        "Entry %s added to drawing %s: user %s x%s (%s)",
        entry.id,
        drawing.id,
        user_id,
        quantity,
        entry_type.value,
    )
    return entry


def list_entries(session: Session, drawing_id: int) -> list[DrawingEntry]:
    """Return a drawing's entries in creation order."""
    _load_drawing(session, drawing_id)
    return _entries_of(session, drawing_id)


def total_entries(session: Session, drawing_id: int) -> int:
    """Return the summed quantity of a drawing's entries."""
    return total_quantity(list_entries(session, drawing_id))


def entry_totals_by_user(session: Session, drawing_id: int) -> dict[int, int]:
    """Return each participant's summed quantity, keyed by user ID."""
    return quantities_by_user(list_entries(session, drawing_id))


def delete_entry(session: Session, actor: User, entry_id: int) -> None:
    """Remove an entry. The recorded winner of a drawing cannot be removed."""
    entry = session.get(DrawingEntry, entry_id)
    if entry is None:
        raise NotFound(f"Entry {entry_id} not found")

    drawing = _load_drawing(session, entry.drawing_id, lock=True)
    ensure_can_manage(actor, drawing)
    if drawing.winner_entry_id == entry.id:
        raise InvalidState(
            f"Entry {entry_id} is the recorded winner of drawing {drawing.id}; "
            "reset the drawing first"
        )

    session.delete(entry)
    drawing.updated_at = datetime.now(timezone.utc)
    flush_drawing(session, drawing)
    session.expire(drawing, ["entries"])
    logger.info("Entry %s removed from drawing %s by user %s", entry_id, drawing.id, actor.id)


def select_winner(
    session: Session,
    actor: User,
    drawing_id: int,
    *,
    source: Optional[UniformSource] = None,
    notifier: Optional[WinnerNotifier] = None,
    now: Optional[datetime] = None,
) -> DrawOutcome:
    """Draw and record the winner of an ACTIVE drawing.

    The drawing is read under a row lock and the outcome is written in the
    same transaction, so at most one winner is ever recorded. Every unit of
    entry quantity is equally likely to win.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session; the caller owns the transaction.
    actor : User
        Administrator performing the draw.
    drawing_id : int
        Drawing to complete.
    source : Optional[UniformSource], default: None
        Randomness override, e.g. a seeded source in tests.
    notifier : Optional[WinnerNotifier], default: None
        Receives the winner notification. Defaults to storing an in-app
        :class:`~rewardsdraw.models.Notification` row.
    now : Optional[datetime], default: None
        Clock override. Becomes ``draw_date`` unless one was scheduled.

    Returns
    -------
    DrawOutcome
        The completed drawing with its winning entry and user.

    Raises
    ------
    NotFound
        If the drawing does not exist.
    Forbidden
        If ``actor`` may not manage the drawing.
    InvalidState
        If the drawing is not ACTIVE (including already COMPLETED), or its
        ``end_date`` has not passed yet.
    InsufficientEntries
        If the summed quantity is below ``min_entries``.
    Conflict
        If the drawing changed concurrently.
    """
    drawing = _load_drawing(session, drawing_id, lock=True)
    ensure_can_manage(actor, drawing)

    engine = DrawingEngine(
        session,
        source=source,
        notifier=notifier if notifier is not None else DatabaseNotifier(session),
    )
    return engine.draw(drawing, now=now)


def run_with_retry(
    session_factory: sessionmaker,
    fn: Callable[[Session], T],
    *,
    attempts: int = 3,
) -> T:
    """Run ``fn`` in its own transaction, retrying on :class:`Conflict`.

    Each attempt opens a fresh session so the retried work re-reads the
    drawing. Any other error propagates immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            with session_factory.begin() as session:
                return fn(session)
        except Conflict:
            if attempt == attempts:
                raise
            logger.warning("Conflict on attempt %s of %s; retrying", attempt, attempts)
    raise AssertionError("unreachable")  # pragma: no cover
