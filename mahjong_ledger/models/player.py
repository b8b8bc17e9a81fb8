#!/usr/bin/env python

"""
Player models
"""

from decimal import Decimal
from typing import Dict, TypedDict

from .scoring import RANK_POINTS, to_decimal


class PlayerRecord(TypedDict):
    id: str
    name: str
    totalPoints: float
    gamesPlayed: int
    averageRank: float
    rankCounts: Dict[str, int]


class Player:
    """A registered player and their running aggregates"""
    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name
        self.total_points = Decimal(0)
        self.games_played = 0
        self.rank_counts: Dict[int, int] = {rank: 0 for rank in RANK_POINTS}
        self.average_rank = 0.0

    def reset(self) -> None:
        self.total_points = Decimal(0)
        self.games_played = 0
        self.rank_counts = {rank: 0 for rank in RANK_POINTS}
        self.average_rank = 0.0

    def recalculate_average_rank(self) -> None:
        if self.games_played > 0:
            total_rank_points = sum(rank * count for rank, count in self.rank_counts.items())
            self.average_rank = total_rank_points / self.games_played
        else:
            self.average_rank = 0.0

    def to_dict(self) -> PlayerRecord:
        return {
            "id": self.id,
            "name": self.name,
            "totalPoints": float(self.total_points),
            "gamesPlayed": self.games_played,
            "averageRank": self.average_rank,
            "rankCounts": {str(rank): count for rank, count in self.rank_counts.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Player':
        player = cls(str(data["id"]), data["name"])
        player.total_points = to_decimal(data.get("totalPoints", 0))
        player.games_played = int(data.get("gamesPlayed", 0))
        rank_counts = data.get("rankCounts") or {}
        player.rank_counts = {
            rank: int(rank_counts.get(str(rank), rank_counts.get(rank, 0))) for rank in RANK_POINTS
        }
        player.recalculate_average_rank()
        return player

    def __repr__(self) -> str:
        return f"Player({self.name!r}, total_points={self.total_points}, games_played={self.games_played})"
