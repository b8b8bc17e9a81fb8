#!/usr/bin/env python

"""
Leaderboard scoring: seats, rank points and the score conversion
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Sequence, Tuple

STARTING_POINTS = 25000
REFERENCE_POINTS = 30000
POINTS_TO_LEADERBOARD = 1000

# Already in leaderboard units
RANK_POINTS = {
    1: 50,
    2: 10,
    3: -10,
    4: -30,
}


class Seat(str, Enum):
    """Table positions in seating order"""
    EAST = "东"
    SOUTH = "南"
    WEST = "西"
    NORTH = "北"

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def order(self) -> int:
        return SEAT_ORDER.index(self)

    @classmethod
    def from_value(cls, value: str) -> 'Seat':
        """Accept either the glyph or the English name"""
        for seat in cls:
            if value == seat.value or str(value).upper() == seat.name:
                return seat
        raise ValueError(f"Unknown seat {value!r}")


SEAT_ORDER: List[Seat] = [Seat.EAST, Seat.SOUTH, Seat.WEST, Seat.NORTH]


def to_decimal(value: Any) -> Decimal:
    """Convert a number or numeric string to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a score")
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None


def parse_final_score(value: Any) -> Decimal:
    """Parse a final table score, which must be a finite number >= 0"""
    if value is None:
        raise ValueError("Missing score")
    if isinstance(value, str) and value.strip() == "":
        raise ValueError("Missing score")
    score = to_decimal(value)
    if not score.is_finite() or score < 0:
        raise ValueError(f"Invalid score: {value!r}")
    return score


def calculate_leaderboard_score(final_score: Any, rank: int) -> Decimal:
    """(final score - 30,000) / 1000 plus the rank points"""
    if rank not in RANK_POINTS:
        raise ValueError(f"Rank must be 1-4, got {rank!r}")

    score_component = (to_decimal(final_score) - REFERENCE_POINTS) / POINTS_TO_LEADERBOARD
    return score_component + RANK_POINTS[rank]


def assign_ranks(entries: Sequence[Tuple[Any, Decimal]]) -> List[Tuple[Any, Decimal, int]]:
    """
    Rank (key, final_score) pairs given in seat order.

    Highest score is rank 1. sorted() is stable, so equal scores keep
    their seat order.
    """
    ordered = sorted(entries, key=lambda entry: entry[1], reverse=True)
    return [(key, score, index + 1) for index, (key, score) in enumerate(ordered)]
