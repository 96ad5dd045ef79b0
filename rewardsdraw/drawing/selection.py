"""Quantity-weighted winner selection."""

from __future__ import annotations

import random
import secrets
from bisect import bisect_right
from dataclasses import dataclass
from itertools import accumulate
from typing import Callable, Generic, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")


class UniformSource(Protocol):
    """Source of uniformly distributed integers."""

    def next(self, n: int) -> int:
        """Return an integer drawn uniformly from ``[0, n)``."""
        ...


class SystemUniformSource:
    """Production source backed by the operating system's CSPRNG."""

    def next(self, n: int) -> int:
        if n < 1:
            raise ValueError("n must be a positive integer")
        return secrets.randbelow(n)


class SeededUniformSource:
    """Reproducible source for tests and simulations."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)

    def next(self, n: int) -> int:
        if n < 1:
            raise ValueError("n must be a positive integer")
        return self._random.randrange(n)


@dataclass(frozen=True)
class WeightedPick(Generic[T]):
    """Outcome of a weighted draw.

    Attributes
    ----------
    item : T
        The selected item.
    index : int
        Position of ``item`` in the input sequence.
    ticket : int
        The drawn slot in ``[0, total)``.
    total : int
        Sum of all weights the draw was made over.
    """

    item: T
    index: int
    ticket: int
    total: int


def cumulative_bounds(weights: Sequence[int]) -> list[int]:
    """Return the exclusive upper bound of each item's slot interval.

    Item ``i`` occupies ``[bounds[i-1], bounds[i])`` (with ``bounds[-1]``
    taken as 0), an interval of width ``weights[i]``.
    """
    for weight in weights:
        if weight < 1:
            raise ValueError("weights must be positive integers")
    return list(accumulate(weights))


def locate(bounds: Sequence[int], ticket: int) -> int:
    """Return the index of the interval in ``bounds`` containing ``ticket``."""
    if not bounds or ticket < 0 or ticket >= bounds[-1]:
        raise ValueError(f"ticket {ticket} is outside the drawn range")
    return bisect_right(bounds, ticket)


def pick_weighted(
    items: Sequence[T],
    source: UniformSource,
    *,
    weight: Callable[[T], int],
) -> WeightedPick[T]:
    """Draw one item with probability proportional to its weight.

    Every unit of weight is equally likely to be drawn, so an item of weight
    5 is five times as likely to win as an item of weight 1.

    Parameters
    ----------
    items : Sequence[T]
        Candidates in a stable order (the order fixes slot positions).
    source : UniformSource
        Randomness used to draw the ticket.
    weight : Callable[[T], int]
        Returns the positive integer weight of an item.

    Returns
    -------
    WeightedPick[T]
        The selected item along with the drawn ticket.

    Raises
    ------
    ValueError
        If ``items`` is empty or any weight is not positive.
    """
    if not items:
        raise ValueError("Cannot draw from an empty sequence")

    bounds = cumulative_bounds([weight(item) for item in items])
    total = bounds[-1]
    ticket = source.next(total)
    index = locate(bounds, ticket)
    return WeightedPick(item=items[index], index=index, ticket=ticket, total=total)


__all__ = [
    "SeededUniformSource",
    "SystemUniformSource",
    "UniformSource",
    "WeightedPick",
    "cumulative_bounds",
    "locate",
    "pick_weighted",
]
