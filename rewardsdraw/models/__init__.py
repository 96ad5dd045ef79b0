from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .organization import Organization  # noqa: F401
from .user import User, UserRole  # noqa: F401
from .drawing import (  # noqa: F401
    Drawing,
    DrawingEntry,
    DrawingStatus,
    EntryType,
)
from .notification import Notification  # noqa: F401

__all__ = [
    "Base",
    "Organization",
    "User",
    "UserRole",
    "Drawing",
    "DrawingEntry",
    "DrawingStatus",
    "EntryType",
    "Notification",
]
