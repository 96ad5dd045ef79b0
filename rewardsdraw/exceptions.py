"""Error taxonomy for drawing operations.

Every error carries a machine-readable ``kind`` and a human-readable
message. Only :class:`Conflict` is safe to retry automatically.
"""

from __future__ import annotations


class DrawingError(Exception):
    """Base class for all drawing workflow errors."""

    kind: str = "drawing_error"
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_json(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFound(DrawingError, LookupError):
    kind = "not_found"


class Forbidden(DrawingError):
    kind = "forbidden"


class InvalidState(DrawingError):
    """Operation is illegal for the drawing's current status."""

    kind = "invalid_state"


class InvalidArgument(DrawingError, ValueError):
    kind = "invalid_argument"


class CapacityExceeded(DrawingError):
    kind = "capacity_exceeded"


class CrossOrganization(DrawingError):
    kind = "cross_organization"


class InsufficientEntries(DrawingError):
    kind = "insufficient_entries"


class Conflict(DrawingError):
    """The drawing changed underneath us; re-fetch and retry."""

    kind = "conflict"
    retryable = True


__all__ = [
    "DrawingError",
    "NotFound",
    "Forbidden",
    "InvalidState",
    "InvalidArgument",
    "CapacityExceeded",
    "CrossOrganization",
    "InsufficientEntries",
    "Conflict",
]
