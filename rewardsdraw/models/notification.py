from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, false, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base, utcnow

if TYPE_CHECKING:
    from .user import User

DRAWING_WON = "DRAWING_WON"


class Notification(Base):
    """In-app message addressed to a single user."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    user: Mapped["User"] = relationship(back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"

    @classmethod
    def for_user(
        cls, session: Session, user_id: int, *, unread_only: bool = False
    ) -> list["Notification"]:
        """Return a user's notifications, newest first."""

        stmt = select(cls).where(cls.user_id == user_id)
        if unread_only:
            stmt = stmt.where(cls.read.is_(False))
        stmt = stmt.order_by(cls.created_at.desc(), cls.id.desc())
        return list(session.scalars(stmt).all())
