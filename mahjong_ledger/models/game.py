#!/usr/bin/env python

"""
Game and per-seat result models
"""

from decimal import Decimal
from typing import Dict, List, TypedDict

from .scoring import RANK_POINTS, Seat, to_decimal


class ResultRecord(TypedDict):
    name: str
    position: str
    finalScore: float
    rank: int
    leaderboardScore: float


class GameRecord(TypedDict):
    id: str
    date: str
    results: List[ResultRecord]


class Result:
    """One seat's outcome within a game"""
    def __init__(
        self,
        name: str,
        position: Seat,
        final_score: Decimal,
        rank: int,
        leaderboard_score: Decimal,
    ):
        self.name = name
        self.position = position
        self.final_score = final_score
        self.rank = rank
        self.leaderboard_score = leaderboard_score

    def to_dict(self) -> ResultRecord:
        return {
            "name": self.name,
            "position": self.position.value,
            "finalScore": float(self.final_score),
            "rank": self.rank,
            "leaderboardScore": float(self.leaderboard_score),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Result':
        rank = int(data["rank"])
        if rank not in RANK_POINTS:
            raise ValueError(f"Invalid rank {rank!r} for {data['name']}")
        return cls(
            data["name"],
            Seat.from_value(data["position"]),
            to_decimal(data["finalScore"]),
            rank,
            to_decimal(data["leaderboardScore"]),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return (
            self.name == other.name
            and self.position == other.position
            and self.final_score == other.final_score
            and self.rank == other.rank
            and self.leaderboard_score == other.leaderboard_score
        )

    def __repr__(self) -> str:
        return (
            f"Result({self.name!r}, {self.position.label}, final_score={self.final_score}, "
            f"rank={self.rank}, leaderboard_score={self.leaderboard_score})"
        )


class Game:
    """A recorded game; results are stored in rank order"""
    def __init__(self, id: str, date: str, results: List[Result]):
        self.id = id
        self.date = date
        self.results = results

    def results_by_seat(self) -> List[Result]:
        return sorted(self.results, key=lambda result: result.position.order)

    def results_by_rank(self) -> List[Result]:
        return sorted(self.results, key=lambda result: result.rank)

    def result_for(self, name: str):
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> GameRecord:
        return {
            "id": self.id,
            "date": self.date,
            "results": [result.to_dict() for result in self.results],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Game':
        return cls(
            str(data["id"]),
            data["date"],
            [Result.from_dict(result) for result in data["results"]],
        )

    def __repr__(self) -> str:
        return f"Game({self.id!r}, {self.date!r}, {self.results!r})"
