#!/usr/bin/env python

"""
Player registry: players and their aggregate statistics
"""

import logging
import random
import string
from typing import Dict, Iterable, Iterator, List, Optional

from ..errors import DuplicatePlayer, EmptyName
from ..models.game import Result
from ..models.player import Player, PlayerRecord
from ..models.scoring import RANK_POINTS

logger = logging.getLogger(__name__)


def generate_id(existing: Iterable[str], length: int = 6) -> str:
    """Generate a short id not already in `existing`"""
    taken = set(existing)
    while True:
        code = ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
        if code not in taken:
            return code


def normalize_name(name: str) -> str:
    return name.strip().casefold()


class PlayerRegistry:
    def __init__(self, players: Optional[List[Player]] = None) -> None:
        # Registration order, which also breaks leaderboard ties
        self._players: List[Player] = list(players or [])

    def __iter__(self) -> Iterator[Player]:
        return iter(self._players)

    def __len__(self) -> int:
        return len(self._players)

    def get(self, name: str) -> Optional[Player]:
        """Exact name lookup, as used when applying results"""
        for player in self._players:
            if player.name == name:
                return player
        return None

    def find(self, name: str) -> Optional[Player]:
        """Case-insensitive lookup of a typed-in name"""
        key = normalize_name(name)
        for player in self._players:
            if normalize_name(player.name) == key:
                return player
        return None

    def add_player(self, name: str) -> Player:
        name = name.strip()
        if not name:
            raise EmptyName()
        if self.find(name) is not None:
            raise DuplicatePlayer(name)

        player = Player(generate_id(p.id for p in self._players), name)
        self._players.append(player)
        return player

    def apply_result(self, player_name: str, result: Result, sign: int) -> None:
        """
        Add (sign=+1) or withdraw (sign=-1) one result's effect on a player.

        Unknown names are ignored so that a history referring to players that
        are missing from the registry can still be replayed.
        """
        player = self.get(player_name)
        if player is None:
            logger.debug(f"No player named {player_name!r}, skipping result")
            return

        player.total_points += sign * result.leaderboard_score
        player.games_played += sign
        player.rank_counts[result.rank] += sign
        player.recalculate_average_rank()

    def apply_results(self, results: List[Result], sign: int) -> None:
        """Apply a whole game's results; ranks are checked before any player changes"""
        if sign not in (1, -1):
            raise ValueError(f"sign must be +1 or -1, got {sign!r}")
        for result in results:
            if result.rank not in RANK_POINTS:
                raise ValueError(f"Result for {result.name} has invalid rank {result.rank!r}")

        for result in results:
            self.apply_result(result.name, result, sign)

    def reset_stats(self) -> None:
        for player in self._players:
            player.reset()

    def list_by_total_points_descending(self) -> List[Player]:
        return sorted(self._players, key=lambda player: player.total_points, reverse=True)

    def to_records(self) -> List[PlayerRecord]:
        return [player.to_dict() for player in self._players]

    @classmethod
    def from_records(cls, records: List[Dict]) -> 'PlayerRegistry':
        return cls([Player.from_dict(record) for record in records])
