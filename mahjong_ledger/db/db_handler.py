#!/usr/bin/env python

"""
Database handler

Stores the ledger as two JSON snapshots, players and games, in sqlite.
"""

import json
import logging
import sqlite3
from typing import Any, List, Tuple

from ..config import Config
from ..errors import StorageError
from ..models.game import GameRecord
from ..models.player import PlayerRecord

logger = logging.getLogger(__name__)

PLAYERS_KEY = "players"
GAMES_KEY = "games"


class DbHandler:
    def __init__(self, config: Config) -> None:
        self.config = config
        self.db_filename = config.db_filename
        self.dev_mode = config.dev_mode
        self.connection = sqlite3.connect(self.db_filename, check_same_thread=False)

        cursor = self.connection.cursor()
        cursor.execute(
            """
        CREATE TABLE IF NOT EXISTS Ledger_Snapshot (
            key TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );
        """
        )

        cursor.execute("PRAGMA user_version;")
        db_ver = cursor.fetchone()
        if db_ver[0] < 1:
            cursor.execute("PRAGMA user_version = 1")

        # Performance optimizations
        cursor.execute("PRAGMA journal_mode = WAL;")
        cursor.execute("PRAGMA synchronous = NORMAL;")

        self.connection.commit()

    def __del__(self):
        self.close()

    def close(self) -> None:
        if getattr(self, "connection", None) is not None:
            self.connection.close()
            self.connection = None

    def _load_collection(self, key: str) -> List[Any]:
        cursor = self.connection.cursor()
        cursor.execute("SELECT payload FROM Ledger_Snapshot WHERE key=?;", (key,))
        row = cursor.fetchone()

        if row is None:
            return []

        try:
            data = json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt {key} snapshot, starting empty: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Unexpected {key} snapshot type {type(data).__name__}, starting empty")
            return []
        return data

    def load(self) -> Tuple[List[PlayerRecord], List[GameRecord]]:
        """Return (players, games); anything unreadable counts as empty"""
        try:
            return self._load_collection(PLAYERS_KEY), self._load_collection(GAMES_KEY)
        except sqlite3.Error as e:
            logger.warning(f"Could not read snapshot, starting empty: {e}")
            return [], []

    def save(self, players: List[PlayerRecord], games: List[GameRecord]) -> None:
        if self.dev_mode:
            logger.debug("Dev mode, snapshot not written")
            return

        cursor = self.connection.cursor()
        try:
            cursor.execute("BEGIN TRANSACTION")

            query = """
                INSERT INTO Ledger_Snapshot (key, payload, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at;
            """
            cursor.execute(query, (PLAYERS_KEY, json.dumps(players, ensure_ascii=False)))
            cursor.execute(query, (GAMES_KEY, json.dumps(games, ensure_ascii=False)))

            self.connection.commit()

        except sqlite3.Error as e:
            self.connection.rollback()
            logger.error(f"Transaction failed: {e}")
            raise StorageError(f"Could not save ledger: {e}") from e
