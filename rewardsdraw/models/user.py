from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import ID_TYPE, Base, utcnow

if TYPE_CHECKING:
    from .drawing import DrawingEntry
    from .notification import Notification
    from .organization import Organization


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"


class User(Base):
    """A member of an organization who can hold drawing entries."""

    def __init__(
        self,
        email: str,
        role: UserRole = UserRole.CLIENT,
        name: Optional[str] = None,
        organization: Optional["Organization"] = None,
        org_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        """Create a new :class:`User` record.

        Parameters
        ----------
        email : str
            Login email; stored trimmed and lower-cased.
        role : UserRole, default: UserRole.CLIENT
            Platform role deciding what the user may administer.
        name : str, optional
            Display name.
        organization : Organization, optional
            Owning organization. Super-administrators may have none.
        org_id : int, optional
            Owning organization ID, as an alternative to ``organization``.
        created_at : datetime, optional
            Explicit creation timestamp.
        updated_at : datetime, optional
            Explicit last update timestamp.
        """

        self.email = email
        self.role = role
        self.name = name
        if organization is not None:
            self.organization = organization
        if org_id is not None:
            self.org_id = org_id
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, length=20),
        nullable=False,
        default=UserRole.CLIENT,
    )
    org_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
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

    # relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="users"
    )
    entries: Mapped[list["DrawingEntry"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("email must not be empty")
        return normalized

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, email='{self.email}', role='{self.role.value}', "
            f"org_id={self.org_id})>"
        )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        """``True`` for organization administrators (not super-administrators)."""
        return self.role == UserRole.ADMIN

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["User"]:
        """Retrieve a user by their (case-insensitive) email address."""

        return session.scalar(select(cls).where(cls.email == email.strip().lower()))

    def to_json(self) -> dict:
        """Return the public identity of this user as a JSON-ready dict."""
        return {"id": self.id, "name": self.name, "email": self.email}
