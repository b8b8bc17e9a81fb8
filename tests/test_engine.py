import random
from collections import defaultdict
from decimal import Decimal

import pytest

from conftest import FakeStore, seats, snapshot
from mahjong_ledger.errors import (
    AlreadyEditing,
    DuplicatePlayer,
    IncompleteSelection,
    InvalidScore,
    NotEditing,
    NotFound,
    StorageError,
    UnknownPlayer,
)
from mahjong_ledger.ledger.engine import LedgerEngine
from mahjong_ledger.models.scoring import Seat

EXAMPLE_GAME = seats(("Alice", 25000), ("Bob", 30000), ("Carol", 20000), ("Dave", 25000))


def assert_totals_match_history(engine):
    totals = defaultdict(Decimal)
    games = defaultdict(int)
    rank_counts = defaultdict(lambda: {1: 0, 2: 0, 3: 0, 4: 0})
    for game in engine.get_history():
        for result in game.results:
            totals[result.name] += result.leaderboard_score
            games[result.name] += 1
            rank_counts[result.name][result.rank] += 1

    for player in engine.registry:
        assert player.total_points == totals[player.name]
        assert player.games_played == games[player.name]
        assert player.rank_counts == rank_counts[player.name]
        if player.games_played:
            expected_average = sum(r * c for r, c in player.rank_counts.items()) / player.games_played
            assert player.average_rank == expected_average
        else:
            assert player.average_rank == 0


def test_record_game_ranks_and_scores(engine, store):
    game = engine.record_game(EXAMPLE_GAME)

    by_name = {result.name: result for result in game.results}
    assert {name: r.rank for name, r in by_name.items()} == {"Bob": 1, "Alice": 2, "Dave": 3, "Carol": 4}
    assert by_name["Bob"].leaderboard_score == 50
    assert by_name["Alice"].leaderboard_score == 5
    assert by_name["Dave"].leaderboard_score == -15
    assert by_name["Carol"].leaderboard_score == -40
    assert by_name["Bob"].position is Seat.SOUTH
    assert [r.rank for r in game.results] == [1, 2, 3, 4]

    assert engine.get_history() == [game]
    assert_totals_match_history(engine)
    assert store.games == engine.ledger.to_records()


def test_balanced_table_injects_constant_total(engine):
    game = engine.record_game(seats(("Alice", 41000), ("Bob", 33000), ("Carol", 26000), ("Dave", 20000)))
    assert sum(result.leaderboard_score for result in game.results) == 20


def test_history_is_most_recent_first(engine):
    first = engine.record_game(EXAMPLE_GAME)
    second = engine.record_game(seats(("Dave", 40000), ("Carol", 30000), ("Bob", 30000), ("Alice", 20000)))
    assert [g.id for g in engine.get_history()] == [second.id, first.id]
    assert first.id != second.id


def test_record_uses_registered_display_names(engine):
    game = engine.record_game(seats(("alice", 25000), ("BOB", 25000), (" carol ", 25000), ("Dave", 25000)))
    assert sorted(r.name for r in game.results) == ["Alice", "Bob", "Carol", "Dave"]
    assert engine.registry.get("Alice").games_played == 1


def test_record_accepts_pairs_and_numeric_strings(engine):
    game = engine.record_game([("Alice", "32,100"), ("Bob", "28000"), ("Carol", 30000.0), ("Dave", 29900)])
    assert game.result_for("Alice").final_score == Decimal(32100)


@pytest.mark.parametrize("assignments", [
    seats(("Alice", 25000), ("Bob", 25000), ("Carol", 25000)),
    seats(("Alice", 25000), ("Bob", 25000), ("Carol", 25000)) + [None],
    seats(("Alice", 25000), ("Bob", 25000), ("Carol", 25000), ("  ", 25000)),
    [],
])
def test_incomplete_selection(engine, store, assignments):
    before = snapshot(engine)
    saves = len(store.saves)
    with pytest.raises(IncompleteSelection):
        engine.record_game(assignments)
    assert snapshot(engine) == before
    assert len(store.saves) == saves


def test_duplicate_player_in_game(engine):
    before = snapshot(engine)
    with pytest.raises(DuplicatePlayer):
        engine.record_game(seats(("Alice", 25000), ("Bob", 25000), ("alice", 25000), ("Dave", 25000)))
    assert snapshot(engine) == before


def test_unknown_player_in_game(engine):
    before = snapshot(engine)
    with pytest.raises(UnknownPlayer):
        engine.record_game(seats(("Alice", 25000), ("Bob", 25000), ("Carol", 25000), ("Zed", 25000)))
    assert snapshot(engine) == before


@pytest.mark.parametrize("bad", ["", None, "abc", -500, "NaN"])
def test_invalid_score_names_the_seat(engine, bad):
    before = snapshot(engine)
    with pytest.raises(InvalidScore) as excinfo:
        engine.record_game(seats(("Alice", 25000), ("Bob", 25000), ("Carol", bad), ("Dave", 25000)))
    assert excinfo.value.seat is Seat.WEST
    assert excinfo.value.player_name == "Carol"
    assert "West" in str(excinfo.value)
    assert snapshot(engine) == before


def test_validation_order_selection_before_scores(engine):
    with pytest.raises(IncompleteSelection):
        engine.record_game(seats(("Alice", "bad"), ("Bob", 25000), ("Carol", 25000)))
    with pytest.raises(DuplicatePlayer):
        engine.record_game(seats(("Alice", "bad"), ("Alice", 25000), ("Carol", 25000), ("Dave", 1)))


def test_record_then_delete_restores_players(engine, store):
    engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)

    game = engine.record_game(seats(("Alice", "31300.7"), ("Bob", 18800), ("Carol", "40100.3"), ("Dave", 29800)))
    engine.delete_game(game.id)

    assert snapshot(engine) == before
    assert store.games == before[1]


def test_delete_unknown_game(engine):
    with pytest.raises(NotFound):
        engine.delete_game("nope")


def test_edit_replaces_results_in_place(engine):
    older = engine.record_game(EXAMPLE_GAME)
    newer = engine.record_game(seats(("Dave", 40000), ("Carol", 30000), ("Bob", 30000), ("Alice", 20000)))

    session = engine.begin_edit(older.id)
    assert engine.editing_game_id == older.id
    assert [seat for seat, _ in session.seats] == [Seat.EAST, Seat.SOUTH, Seat.WEST, Seat.NORTH]
    assert [name for _, name in session.seats] == ["Alice", "Bob", "Carol", "Dave"]
    assert engine.registry.get("Alice").games_played == 1

    edited = engine.commit_edit(older.id, [42000, 28000, 26000, 24000])

    assert edited is older
    assert edited.id == older.id
    assert engine.get_history() == [newer, older]
    assert edited.result_for("Alice").rank == 1
    assert edited.result_for("Alice").leaderboard_score == 62
    assert engine.editing_game_id is None
    assert_totals_match_history(engine)


def test_edit_keeps_date(engine):
    game = engine.record_game(EXAMPLE_GAME)
    date = game.date
    engine.begin_edit(game.id)
    engine.commit_edit(game.id, ["30000", "30000", "30000", "30000"])
    assert game.date == date
    assert [game.result_for(n).rank for n in ("Alice", "Bob", "Carol", "Dave")] == [1, 2, 3, 4]


@pytest.mark.parametrize("new_scores", [
    [42000, 28000, "x", 24000],
    [42000, 28000, 26000],
    [42000, -1, 26000, 24000],
])
def test_invalid_edit_rolls_back(engine, store, new_scores):
    game = engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)
    saves = len(store.saves)

    engine.begin_edit(game.id)
    with pytest.raises(InvalidScore):
        engine.commit_edit(game.id, new_scores)

    assert snapshot(engine) == before
    assert engine.editing_game_id is None
    assert len(store.saves) == saves
    # A new edit can start straight away
    engine.begin_edit(game.id)


def test_cancel_edit_restores(engine):
    game = engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)

    engine.begin_edit(game.id)
    assert snapshot(engine) != before
    engine.cancel_edit(game.id)

    assert snapshot(engine) == before
    assert engine.editing_game_id is None


def test_cancel_without_edit_is_noop(engine):
    game = engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)
    engine.cancel_edit(game.id)
    engine.cancel_edit("unknown")
    assert snapshot(engine) == before


def test_only_one_edit_at_a_time(engine):
    first = engine.record_game(EXAMPLE_GAME)
    second = engine.record_game(EXAMPLE_GAME)
    engine.begin_edit(first.id)
    with pytest.raises(AlreadyEditing):
        engine.begin_edit(second.id)
    with pytest.raises(AlreadyEditing):
        engine.begin_edit(first.id)


def test_commit_requires_begin_edit(engine):
    game = engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)
    with pytest.raises(NotEditing):
        engine.commit_edit(game.id, [30000, 30000, 30000, 30000])
    assert snapshot(engine) == before


def test_begin_edit_unknown_game(engine):
    with pytest.raises(NotFound):
        engine.begin_edit("missing")


def test_delete_game_mid_edit(engine):
    keep = engine.record_game(EXAMPLE_GAME)
    drop = engine.record_game(seats(("Dave", 40000), ("Carol", 30000), ("Bob", 30000), ("Alice", 20000)))

    engine.begin_edit(drop.id)
    engine.delete_game(drop.id)

    assert engine.editing_game_id is None
    assert engine.get_history() == [keep]
    assert_totals_match_history(engine)


def test_snapshot_during_edit_keeps_applied_stats(engine, store):
    game = engine.record_game(EXAMPLE_GAME)
    saved_players = store.players

    engine.begin_edit(game.id)
    engine.add_player("Erin")

    assert [p for p in store.players if p["name"] != "Erin"] == saved_players
    assert engine.registry.get("Alice").games_played == 0


def test_leaderboard_order(engine):
    engine.record_game(EXAMPLE_GAME)
    assert [p.name for p in engine.get_leaderboard()] == ["Bob", "Alice", "Dave", "Carol"]


def test_random_sequence_keeps_invariant(engine):
    rng = random.Random(7)
    names = ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank"]
    for name in names[4:]:
        engine.add_player(name)

    for _ in range(60):
        action = rng.random()
        history = engine.get_history()
        if action < 0.5 or not history:
            table = rng.sample(names, 4)
            scores = [rng.randrange(0, 600) * 100 for _ in range(4)]
            engine.record_game(list(zip(table, scores)))
        elif action < 0.65:
            engine.delete_game(rng.choice(history).id)
        elif action < 0.8:
            game = rng.choice(history)
            engine.begin_edit(game.id)
            engine.commit_edit(game.id, [rng.randrange(0, 600) * 50 for _ in range(4)])
        elif action < 0.9:
            game = rng.choice(history)
            engine.begin_edit(game.id)
            engine.cancel_edit(game.id)
        else:
            game = rng.choice(history)
            engine.begin_edit(game.id)
            with pytest.raises(InvalidScore):
                engine.commit_edit(game.id, [1, 2, "?", 4])
        assert_totals_match_history(engine)


def test_recalculate_matches_incremental_stats(engine):
    engine.record_game(EXAMPLE_GAME)
    engine.record_game(seats(("Dave", "40000.5"), ("Carol", 30000), ("Bob", "29999.5"), ("Alice", 20000)))
    before = snapshot(engine)

    engine.registry.get("Alice").games_played = 99
    engine.recalculate()

    assert snapshot(engine) == before


def test_player_results(engine):
    first = engine.record_game(EXAMPLE_GAME)
    second = engine.record_game(seats(("Dave", 40000), ("Carol", 30000), ("Bob", 30000), ("Alice", 20000)))
    results = engine.player_results("alice")
    assert [game.id for game, _ in results] == [second.id, first.id]
    assert [result.rank for _, result in results] == [4, 2]
    with pytest.raises(UnknownPlayer):
        engine.player_results("Zed")


def test_storage_error_keeps_in_memory_change():
    store = FakeStore()
    engine = LedgerEngine.from_store(store)
    for name in ["Alice", "Bob", "Carol", "Dave"]:
        engine.add_player(name)

    store.fail = True
    with pytest.raises(StorageError):
        engine.record_game(EXAMPLE_GAME)

    assert len(engine.get_history()) == 1
    assert engine.registry.get("Bob").games_played == 1
    assert_totals_match_history(engine)


def test_engine_loads_from_snapshot(engine, store):
    engine.record_game(EXAMPLE_GAME)
    reloaded = LedgerEngine.from_store(FakeStore(store.players, store.games))
    assert snapshot(reloaded) == snapshot(engine)
    assert [p.name for p in reloaded.get_leaderboard()] == [p.name for p in engine.get_leaderboard()]


@pytest.mark.parametrize("games", [
    [{"id": "x", "date": "d", "results": [{"name": "A"}]}],
    [{"id": "x", "date": "d", "results": [
        {"name": "A", "position": "东", "finalScore": 30000, "rank": 9, "leaderboardScore": 0},
    ]}],
    [{"id": "x", "date": "d", "results": [
        {"name": "A", "position": "centre", "finalScore": 30000, "rank": 1, "leaderboardScore": 50},
    ]}],
    [None],
    ["game"],
])
def test_corrupt_game_snapshot_loads_empty(games):
    players = [{"id": "p1", "name": "Alice", "totalPoints": 5.0, "gamesPlayed": 1,
                "averageRank": 2.0, "rankCounts": {"1": 0, "2": 1, "3": 0, "4": 0}}]
    engine = LedgerEngine.from_store(FakeStore(players, games))

    assert engine.get_history() == []
    assert engine.registry.get("Alice").games_played == 1


@pytest.mark.parametrize("players", [[1, 2], [{"name": "Alice"}], [None], [{"id": "p1", "name": "A", "gamesPlayed": "x"}]])
def test_corrupt_player_snapshot_loads_empty(players):
    engine = LedgerEngine.from_store(FakeStore(players, []))
    assert list(engine.registry) == []


@pytest.mark.parametrize("new_scores", [None, 42000, "42000", object()])
def test_edit_with_non_sequence_scores_rolls_back(engine, new_scores):
    game = engine.record_game(EXAMPLE_GAME)
    before = snapshot(engine)

    engine.begin_edit(game.id)
    with pytest.raises(InvalidScore) as excinfo:
        engine.commit_edit(game.id, new_scores)

    assert excinfo.value.seat is Seat.EAST
    assert snapshot(engine) == before
    assert engine.editing_game_id is None


@pytest.mark.parametrize("bad_entry", [("Alice",), ("Alice", 25000, "extra"), 7])
def test_malformed_seat_entry_is_incomplete_selection(engine, bad_entry):
    before = snapshot(engine)
    with pytest.raises(IncompleteSelection):
        engine.record_game([bad_entry, ("Bob", 25000), ("Carol", 25000), ("Dave", 25000)])
    assert snapshot(engine) == before
