import pytest
import yaml

from mahjong_ledger.config import Config
from mahjong_ledger.errors import StorageError
from mahjong_ledger.ledger.engine import LedgerEngine

PLAYER_NAMES = ["Alice", "Bob", "Carol", "Dave"]


class FakeStore:
    def __init__(self, players=None, games=None, fail=False):
        self.players = players or []
        self.games = games or []
        self.fail = fail
        self.saves = []

    def load(self):
        return self.players, self.games

    def save(self, players, games):
        if self.fail:
            raise StorageError("disk full")
        self.saves.append((players, games))
        self.players, self.games = players, games


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def engine(store):
    ledger_engine = LedgerEngine.from_store(store)
    for name in PLAYER_NAMES:
        ledger_engine.add_player(name)
    return ledger_engine


@pytest.fixture()
def write_config(tmp_path):
    def _write(**overrides):
        data = {
            "bot": {"token": "123:abc", "dev_mode": False},
            "database": {"filename": "ledger.db"},
            "display": {"leaderboard_limit": 10, "history_limit": 3},
        }
        for section, values in overrides.items():
            data.setdefault(section, {}).update(values)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return Config(str(path))

    return _write


def seats(*pairs):
    return [{"name": name, "finalScore": score} for name, score in pairs]


def snapshot(engine):
    """Comparable view of everything the engine holds"""
    return engine.registry.to_records(), engine.ledger.to_records()
