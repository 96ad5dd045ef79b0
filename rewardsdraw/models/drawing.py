"""Database models for drawings and their entry ledger."""

from __future__ import annotations

import enum
import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    false,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import ID_TYPE, Base, utcnow

if TYPE_CHECKING:
    from .organization import Organization
    from .user import User


class DrawingStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EntryType(str, enum.Enum):
    MANUAL = "MANUAL"
    """Granted by an administrator."""

    REFERRAL = "REFERRAL"
    """Accrued automatically from a referral."""


class Drawing(Base):
    """A prize giveaway scoped to one organization."""

    __tablename__ = "drawings"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Title shown to participants."""

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    prize: Mapped[str] = mapped_column(String(255), nullable=False)
    """Short prize description included in the winner notification."""

    prize_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    rules: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    draw_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    """Draw time: the scheduled one, or the actual one when none was scheduled."""

    draw_date_scheduled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    """``True`` when ``draw_date`` was fixed by an administrator."""

    min_entries: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Total entry quantity required before a winner can be drawn."""

    max_entries: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Cap on the summed entry quantity; ``None`` means unlimited."""

    status: Mapped[DrawingStatus] = mapped_column(
        Enum(DrawingStatus, name="drawing_status", native_enum=False, length=20),
        nullable=False,
        default=DrawingStatus.ACTIVE,
    )

    winner_entry_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE,
        ForeignKey("drawing_entries.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )
    """Winning entry; set iff the drawing is COMPLETED."""

    org_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_by_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    """Optimistic-concurrency counter maintained by the mapper."""

    organization: Mapped["Organization"] = relationship(back_populates="drawings")
    created_by: Mapped[Optional["User"]] = relationship(foreign_keys=[created_by_id])
    entries: Mapped[list["DrawingEntry"]] = relationship(
        back_populates="drawing",
        foreign_keys="DrawingEntry.drawing_id",
        cascade="all, delete-orphan",
        order_by=lambda: (DrawingEntry.created_at, DrawingEntry.id),
    )
    winner_entry: Mapped[Optional["DrawingEntry"]] = relationship(
        foreign_keys=[winner_entry_id], post_update=True
    )

    __table_args__ = (
        CheckConstraint("min_entries >= 1", name="min_entries_positive"),
        CheckConstraint(
            "max_entries IS NULL OR max_entries >= 1", name="max_entries_positive"
        ),
        CheckConstraint("end_date >= start_date", name="end_after_start"),
        CheckConstraint(
            "draw_date IS NULL OR draw_date >= end_date", name="draw_after_end"
        ),
        Index("ix_drawings_status", "status"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __init__(
        self,
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
        organization: Optional["Organization"] = None,
        org_id: Optional[int] = None,
        created_by: Optional["User"] = None,
        created_by_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        self.prize = prize
        self.start_date = start_date
        self.end_date = end_date
        self.draw_date = draw_date
        self.draw_date_scheduled = draw_date is not None
        self.min_entries = min_entries
        self.max_entries = max_entries
        self.status = status
        self.description = description
        self.prize_details = prize_details
        self.rules = rules
        if organization is not None:
            self.organization = organization
        if org_id is not None:
            self.org_id = org_id
        if created_by is not None:
            self.created_by = created_by
        if created_by_id is not None:
            self.created_by_id = created_by_id
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Drawing(id={id}, name={name}, status={status}, winner_entry_id={winner})>".format(
            id=self.id,
            name=self.name,
            status=self.status.value if self.status is not None else None,
            winner=self.winner_entry_id,
        )

    @property
    def winner(self) -> Optional["User"]:
        """User holding the winning entry, if a winner has been drawn."""
        if self.winner_entry is None:
            return None
        return self.winner_entry.user

    @property
    def total_entries(self) -> int:
        """Summed quantity of the entries currently loaded on this drawing."""
        return sum(entry.quantity for entry in self.entries)

    @classmethod
    def for_organization(cls, session: Session, org_id: int) -> list["Drawing"]:
        """Return the organization's drawings, newest first."""

        stmt = (
            select(cls)
            .where(cls.org_id == org_id)
            .order_by(cls.created_at.desc(), cls.id.desc())
        )
        return list(session.scalars(stmt).all())

    def to_json(self, *, include_entries: bool = False) -> dict[str, Any]:
        """Return this drawing as a JSON-serializable dict.

        Timestamps are rendered as ISO 8601 strings in UTC. The winner's
        public identity is embedded when the drawing is completed.
        """
        winner = self.winner
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "prize": self.prize,
            "prize_details": self.prize_details,
            "rules": self.rules,
            "start_date": dt_iso(self.start_date),
            "end_date": dt_iso(self.end_date),
            "draw_date": dt_iso(self.draw_date),
            "draw_date_scheduled": self.draw_date_scheduled,
            "min_entries": self.min_entries,
            "max_entries": self.max_entries,
            "status": self.status.value,
            "org_id": self.org_id,
            "created_by_id": self.created_by_id,
            "winner_entry_id": self.winner_entry_id,
            "winner": winner.to_json() if winner is not None else None,
            "total_entries": self.total_entries,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }
        if include_entries:
            data["entries"] = [entry.to_json() for entry in self.entries]
        return data

    def to_json_str(self, *, include_entries: bool = False) -> str:
        """Serialize this drawing to a JSON string."""
        return json.dumps(self.to_json(include_entries=include_entries))


class DrawingEntry(Base):
    """A weighted claim by one user on one drawing's prize pool.

    Entries are additive: each grant is its own row and rows are never
    updated in place.
    """

    __tablename__ = "drawing_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)

    drawing_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("drawings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Number of equally weighted slots this entry occupies in the draw."""

    entry_type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, name="entry_type", native_enum=False, length=20),
        nullable=False,
        default=EntryType.MANUAL,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    drawing: Mapped["Drawing"] = relationship(
        back_populates="entries", foreign_keys=[drawing_id]
    )
    user: Mapped["User"] = relationship(back_populates="entries")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="quantity_positive"),
    )

    def __init__(
        self,
        *,
        drawing: Optional["Drawing"] = None,
        drawing_id: Optional[int] = None,
        user: Optional["User"] = None,
        user_id: Optional[int] = None,
        quantity: int = 1,
        entry_type: EntryType = EntryType.MANUAL,
        created_at: Optional[datetime] = None,
    ) -> None:
        if drawing is not None:
            self.drawing = drawing
        if drawing_id is not None:
            self.drawing_id = drawing_id
        if user is not None:
            self.user = user
        if user_id is not None:
            self.user_id = user_id
        self.quantity = quantity
        self.entry_type = entry_type
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawingEntry(id={id}, drawing_id={d}, user_id={u}, quantity={q})>".format(
            id=self.id,
            d=self.drawing_id,
            u=self.user_id,
            q=self.quantity,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "drawing_id": self.drawing_id,
            "user_id": self.user_id,
            "quantity": self.quantity,
            "entry_type": self.entry_type.value,
            "created_at": dt_iso(self.created_at),
        }


__all__ = [
    "Drawing",
    "DrawingEntry",
    "DrawingStatus",
    "EntryType",
]
