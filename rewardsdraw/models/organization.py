from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base, utcnow

if TYPE_CHECKING:
    from .drawing import Drawing
    from .user import User


class Organization(Base):
    """Tenant boundary: users and drawings are partitioned by organization."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
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

    users: Mapped[list["User"]] = relationship(back_populates="organization")
    drawings: Mapped[list["Drawing"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Organization"]:
        """Retrieve an organization by its unique name."""

        return session.scalar(select(cls).where(cls.name == name))
