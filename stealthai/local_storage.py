"""
local_storage.py — Tiny string key/value store on SQLite.

Holds opaque blobs such as the per-action override map (key
"action-configs"). Values are stored and returned verbatim; callers own
the encoding.
"""

import sqlite3
from pathlib import Path

DB_NAME = "stealthai.db"


class LocalStorage:
    def __init__(self, data_dir: str):
        Path(data_dir).mkdir(parents=True, exist_ok=True)
        self._db_path = str(Path(data_dir) / DB_NAME)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS local_storage (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

    def get_item(self, key: str):
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str):
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO local_storage(key, value) VALUES(?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value)
            )

    def remove_item(self, key: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))

    @property
    def db_path(self) -> str:
        return self._db_path


class MemoryStorage:
    """Dict-backed store with the same interface; nothing survives the process."""

    def __init__(self, items: dict = None):
        self._items = dict(items or {})

    def get_item(self, key: str):
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value

    def remove_item(self, key: str):
        self._items.pop(key, None)
