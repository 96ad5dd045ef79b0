"""Pure projections over a drawing's entry rows.

Totals are always recomputed from the rows; nothing here holds state.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..exceptions import CapacityExceeded, InvalidArgument
from ..models import DrawingEntry


def total_quantity(entries: Iterable[DrawingEntry]) -> int:
    """Return the summed quantity of ``entries`` (0 when empty)."""
    return sum(entry.quantity for entry in entries)


def quantities_by_user(entries: Iterable[DrawingEntry]) -> dict[int, int]:
    """Return summed quantity per user ID, in first-seen order."""
    totals: dict[int, int] = {}
    for entry in entries:
        totals[entry.user_id] = totals.get(entry.user_id, 0) + entry.quantity
    return totals


def remaining_capacity(max_entries: Optional[int], total: int) -> Optional[int]:
    """Return how much quantity can still be added, or ``None`` if unlimited."""
    if max_entries is None:
        return None
    return max(max_entries - total, 0)


def validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgument("quantity must be an integer")
    if quantity < 1:
        raise InvalidArgument("quantity must be at least 1")


def ensure_capacity(max_entries: Optional[int], total: int, quantity: int) -> None:
    """Raise :class:`CapacityExceeded` if adding ``quantity`` overflows the cap."""
    remaining = remaining_capacity(max_entries, total)
    if remaining is not None and quantity > remaining:
        raise CapacityExceeded(
            f"Adding {quantity} entries would exceed the maximum of {max_entries} "
            f"(current total: {total}, {remaining} remaining)"
        )


__all__ = [
    "ensure_capacity",
    "quantities_by_user",
    "remaining_capacity",
    "total_quantity",
    "validate_quantity",
]
