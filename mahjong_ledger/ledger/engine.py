#!/usr/bin/env python

"""
Ledger engine

Records, edits and deletes games while keeping every player's aggregates
equal to the sum of their results over the games in the ledger.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import (
    AlreadyEditing,
    DuplicatePlayer,
    IncompleteSelection,
    InvalidScore,
    NotEditing,
    StateError,
    StorageError,
    UnknownPlayer,
)
from ..models.game import Game, Result
from ..models.player import Player
from ..models.scoring import SEAT_ORDER, Seat, assign_ranks, calculate_leaderboard_score, parse_final_score
from .history import GameLedger
from .registry import PlayerRegistry, generate_id, normalize_name

logger = logging.getLogger(__name__)


class EditSession:
    """Handle for a game whose results are withdrawn pending an edit"""
    def __init__(self, game: Game):
        self.game_id = game.id
        self.date = game.date
        self.original_results = game.results_by_seat()

    @property
    def seats(self) -> List[Tuple[Seat, str]]:
        return [(result.position, result.name) for result in self.original_results]


def _unpack_assignment(entry: Any) -> Tuple[Optional[str], Any]:
    if entry is None:
        return None, None
    if isinstance(entry, dict):
        return entry.get("name"), entry.get("finalScore", entry.get("final_score"))
    try:
        name, final_score = entry
    except (TypeError, ValueError):
        # Malformed entries count as empty seats
        return None, None
    return name, final_score


def _build_results(scored: Sequence[Tuple[Seat, str, Any]]) -> List[Result]:
    """Rank (seat, name, final score) triples given in seat order"""
    ranked = assign_ranks([((seat, name), final_score) for seat, name, final_score in scored])
    return [
        Result(name, seat, final_score, rank, calculate_leaderboard_score(final_score, rank))
        for (seat, name), final_score, rank in ranked
    ]


def _parse_scores(seated: Sequence[Tuple[Seat, str]], raw_scores: Sequence[Any]) -> List[Tuple[Seat, str, Any]]:
    scored = []
    for index, (seat, name) in enumerate(seated):
        value = raw_scores[index] if index < len(raw_scores) else None
        try:
            scored.append((seat, name, parse_final_score(value)))
        except (TypeError, ValueError):
            raise InvalidScore(seat, name, value) from None
    return scored


def _rebuild(kind: str, build, records):
    """Rebuild a collection from snapshot records; malformed records count as an empty snapshot"""
    try:
        return build(records)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Corrupt {kind} snapshot, starting empty: {e!r}")
        return build([])


class LedgerEngine:
    def __init__(self, store=None, registry: Optional[PlayerRegistry] = None, ledger: Optional[GameLedger] = None):
        self.store = store
        self.registry = registry if registry is not None else PlayerRegistry()
        self.ledger = ledger if ledger is not None else GameLedger()
        self._editing: Optional[EditSession] = None

    @classmethod
    def from_store(cls, store) -> 'LedgerEngine':
        players, games = store.load()
        engine = cls(
            store,
            _rebuild("players", PlayerRegistry.from_records, players),
            _rebuild("games", GameLedger.from_records, games),
        )
        logger.info(f"Loaded {len(engine.registry)} players and {len(engine.ledger)} games")
        return engine

    @property
    def editing_game_id(self) -> Optional[str]:
        return self._editing.game_id if self._editing is not None else None

    # Persistence

    def _snapshot_players(self) -> List[dict]:
        if self._editing is None:
            return self.registry.to_records()
        # Never save the withdrawn state of a game that is mid-edit
        registry = copy.deepcopy(self.registry)
        registry.apply_results(self._editing.original_results, +1)
        return registry.to_records()

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self._snapshot_players(), self.ledger.to_records())
        except StorageError as e:
            logger.error(f"Could not save ledger, changes are only in memory: {e}")
            raise

    def _get_game(self, game_id: str) -> Game:
        try:
            return self.ledger.get(game_id)
        except StateError as e:
            logger.warning(str(e))
            raise

    # Players

    def add_player(self, name: str) -> Player:
        player = self.registry.add_player(name)
        logger.info(f"Added player {player.name} ({player.id})")
        self._persist()
        return player

    def get_leaderboard(self) -> List[Player]:
        return self.registry.list_by_total_points_descending()

    def player_results(self, name: str) -> List[Tuple[Game, Result]]:
        player = self.registry.find(name)
        if player is None:
            raise UnknownPlayer(name)
        results = []
        for game in self.ledger:
            result = game.result_for(player.name)
            if result is not None:
                results.append((game, result))
        return results

    # Games

    def get_history(self) -> List[Game]:
        return list(self.ledger)

    def record_game(self, seat_assignments: Sequence[Any]) -> Game:
        """
        Record a game from four seat assignments in East, South, West, North
        order. Each assignment is a {name, finalScore} mapping, a
        (name, final_score) pair, or None for an empty seat.
        """
        selected: List[Tuple[Seat, str, Any]] = []
        for seat, entry in zip(SEAT_ORDER, seat_assignments):
            name, final_score = _unpack_assignment(entry)
            if name is not None and str(name).strip():
                selected.append((seat, str(name).strip(), final_score))

        if len(selected) != 4 or len(seat_assignments) != 4:
            raise IncompleteSelection(len(selected))

        keys = [normalize_name(name) for _, name, _ in selected]
        if len(set(keys)) != 4:
            duplicate = next(name for _, name, _ in selected if keys.count(normalize_name(name)) > 1)
            raise DuplicatePlayer(duplicate)

        seated = []
        for seat, name, _ in selected:
            player = self.registry.find(name)
            if player is None:
                raise UnknownPlayer(name)
            seated.append((seat, player.name))

        results = _build_results(_parse_scores(seated, [final_score for _, _, final_score in selected]))

        self.registry.apply_results(results, +1)
        game = Game(
            generate_id(self.ledger.ids()),
            datetime.now(timezone.utc).isoformat(),
            results,
        )
        self.ledger.prepend(game)
        logger.info(
            f"Recorded game {game.id}: "
            + ", ".join(f"{r.rank}. {r.name} {r.final_score} ({r.leaderboard_score:+})" for r in results)
        )
        self._persist()
        return game

    def delete_game(self, game_id: str) -> None:
        game = self._get_game(game_id)

        if self.editing_game_id == game.id:
            # Its results are already withdrawn
            self._editing = None
        else:
            self.registry.apply_results(game.results, -1)
        self.ledger.remove(game.id)
        logger.info(f"Deleted game {game.id}")
        self._persist()

    def begin_edit(self, game_id: str) -> EditSession:
        game = self._get_game(game_id)
        if self._editing is not None:
            logger.warning(f"Edit of {game.id} refused, {self._editing.game_id} is still being edited")
            raise AlreadyEditing(self._editing.game_id)

        self.registry.apply_results(game.results, -1)
        self._editing = EditSession(game)
        logger.info(f"Editing game {game.id}")
        return self._editing

    def commit_edit(self, game_id: str, new_scores: Sequence[Any]) -> Game:
        game = self._get_game(game_id)
        if self.editing_game_id != game.id:
            logger.warning(f"Save of game {game.id} refused, it is not being edited")
            raise NotEditing(game.id)

        session = self._editing
        try:
            try:
                if isinstance(new_scores, (str, bytes)):
                    raise TypeError("scores must be a sequence")
                new_scores = list(new_scores)
            except TypeError:
                first = session.original_results[0]
                raise InvalidScore(first.position, first.name, new_scores) from None
            if len(new_scores) != 4:
                missing = session.original_results[min(len(new_scores), 3)]
                raise InvalidScore(missing.position, missing.name, None)
            results = _build_results(_parse_scores(session.seats, new_scores))
        except InvalidScore:
            self.registry.apply_results(session.original_results, +1)
            self._editing = None
            logger.info(f"Edit of game {game.id} rejected, original results restored")
            raise

        self.registry.apply_results(results, +1)
        game.results = results
        self._editing = None
        logger.info(f"Updated game {game.id}")
        self._persist()
        return game

    def cancel_edit(self, game_id: str) -> None:
        if self._editing is None or self._editing.game_id != game_id:
            logger.info(f"Nothing to cancel for game {game_id}")
            return

        self.registry.apply_results(self._editing.original_results, +1)
        self._editing = None
        logger.info(f"Cancelled edit of game {game_id}")

    def recalculate(self) -> None:
        """Rebuild every player's aggregates from the game history"""
        self.registry.reset_stats()
        for game in self.ledger:
            if game.id != self.editing_game_id:
                self.registry.apply_results(game.results, +1)
        logger.info(f"Recalculated stats from {len(self.ledger)} games")
        self._persist()
