#!/usr/bin/env python

"""
Game ledger: recorded games, most recent first
"""

from typing import Dict, Iterator, List, Optional, Union

from ..errors import NotFound
from ..models.game import Game, GameRecord


class GameLedger:
    def __init__(self, games: Optional[List[Game]] = None) -> None:
        self._games: List[Game] = list(games or [])

    def __iter__(self) -> Iterator[Game]:
        return iter(self._games)

    def __len__(self) -> int:
        return len(self._games)

    def ids(self) -> List[str]:
        return [game.id for game in self._games]

    def prepend(self, game: Game) -> None:
        self._games.insert(0, game)

    def get(self, game_id: str) -> Game:
        for game in self._games:
            if game.id == game_id:
                return game
        raise NotFound(game_id)

    def position(self, game_id: str) -> int:
        """1-based position in the history listing"""
        return self._games.index(self.get(game_id)) + 1

    def resolve(self, ref: Union[str, int]) -> Game:
        """Look a game up by id, falling back to its history position"""
        ref = str(ref).strip()
        for game in self._games:
            if game.id == ref:
                return game
        if ref.isdigit() and 1 <= int(ref) <= len(self._games):
            return self._games[int(ref) - 1]
        raise NotFound(ref)

    def remove(self, game_id: str) -> Game:
        game = self.get(game_id)
        self._games.remove(game)
        return game

    def to_records(self) -> List[GameRecord]:
        return [game.to_dict() for game in self._games]

    @classmethod
    def from_records(cls, records: List[Dict]) -> 'GameLedger':
        return cls([Game.from_dict(record) for record in records])
