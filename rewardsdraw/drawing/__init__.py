"""Drawing lifecycle, entry ledger and winner selection."""

from .engine import DrawingEngine, DrawOutcome, flush_drawing
from .ledger import (
    ensure_capacity,
    quantities_by_user,
    remaining_capacity,
    total_quantity,
    validate_quantity,
)
from .lifecycle import (
    TRANSITIONS,
    can_transition,
    ensure_transition,
    transition,
)
from .selection import (
    SeededUniformSource,
    SystemUniformSource,
    UniformSource,
    WeightedPick,
    pick_weighted,
)

__all__ = [
    "DrawOutcome",
    "DrawingEngine",
    "SeededUniformSource",
    "SystemUniformSource",
    "TRANSITIONS",
    "UniformSource",
    "WeightedPick",
    "can_transition",
    "ensure_capacity",
    "ensure_transition",
    "flush_drawing",
    "pick_weighted",
    "quantities_by_user",
    "remaining_capacity",
    "total_quantity",
    "transition",
    "validate_quantity",
]
