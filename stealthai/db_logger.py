"""
db_logger.py — SQLite run log for stealthai.

Creates stealthai.db in the data directory (default ~/.stealthai).
Thread-safe via a dedicated writer thread and queue, so the pipeline never
blocks on disk while it is holding the clipboard.

Schema:
    log_entries(id, session_id, timestamp, tag, message, action_id)
    sessions(id, started_at, backend)

Auto-purges entries older than RETAIN_DAYS (default 30).
"""

import queue
import sqlite3
import sys
import threading
import uuid
from datetime import datetime, timedelta
from pathlib import Path

RETAIN_DAYS = 30
DB_NAME     = "stealthai.db"
TAGS        = ("info", "ok", "warn", "err", "debug", "gate")


def null_log(message: str, tag: str = "info", action_id: str = ""):
    """Default log sink for components constructed without a logger."""


class DBLogger:
    def __init__(self, data_dir: str, backend: str = "", echo: bool = False):
        Path(data_dir).mkdir(parents=True, exist_ok=True)
        self._db_path   = str(Path(data_dir) / DB_NAME)
        self._queue     = queue.Queue()
        self._session   = str(uuid.uuid4())[:8]
        self._stop_evt  = threading.Event()
        self.echo       = echo

        self._init_db()
        self._start_session(backend)
        self._purge_old()

        self._writer = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer.start()

    # ── Setup ─────────────────────────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id         TEXT PRIMARY KEY,
                    started_at TEXT NOT NULL,
                    backend    TEXT
                );
                CREATE TABLE IF NOT EXISTS log_entries (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL,
                    timestamp  TEXT NOT NULL,
                    tag        TEXT NOT NULL,
                    message    TEXT NOT NULL,
                    action_id  TEXT
                );
                CREATE INDEX IF NOT EXISTS idx_log_ts
                    ON log_entries(timestamp);
                CREATE INDEX IF NOT EXISTS idx_log_session
                    ON log_entries(session_id);
                CREATE INDEX IF NOT EXISTS idx_log_tag
                    ON log_entries(tag);
            """)

    def _start_session(self, backend: str):
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO sessions(id, started_at, backend) VALUES(?,?,?)",
                (self._session, datetime.now().isoformat(), backend)
            )

    def _purge_old(self):
        cutoff = (datetime.now() - timedelta(days=RETAIN_DAYS)).isoformat()
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM log_entries WHERE timestamp < ?", (cutoff,)
            )
            conn.execute(
                "DELETE FROM sessions WHERE started_at < ? "
                "AND id NOT IN (SELECT DISTINCT session_id FROM log_entries)",
                (cutoff,)
            )

    # ── Writer thread ─────────────────────────────────────────────────────────

    def _writer_loop(self):
        conn = self._connect()
        while not self._stop_evt.is_set():
            try:
                item = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            if item is None:
                self._queue.task_done()
                break
            try:
                conn.execute(
                    "INSERT INTO log_entries"
                    "(session_id, timestamp, tag, message, action_id)"
                    " VALUES(?,?,?,?,?)",
                    item
                )
                conn.commit()
            except sqlite3.Error as exc:
                print(f"stealthai: log write failed: {exc}", file=sys.stderr)
            finally:
                self._queue.task_done()
        conn.close()

    # ── Public API ────────────────────────────────────────────────────────────

    def log(self, message: str, tag: str = "info", action_id: str = ""):
        now = datetime.now()
        if self.echo:
            print(f"[{now.strftime('%H:%M:%S')}] {tag:<5} {message}", file=sys.stderr)
        self._queue.put((
            self._session,
            now.isoformat(),
            tag,
            message,
            action_id,
        ))

    def get_entries(self, session_id: str = None, tag: str = None,
                    action_id: str = None, limit: int = 500) -> list:
        """
        Fetch log entries, oldest first. Returns list of dicts:
            {id, session_id, timestamp, tag, message, action_id}
        """
        clauses = []
        params  = []
        if session_id:
            clauses.append("session_id = ?")
            params.append(session_id)
        if tag:
            clauses.append("tag = ?")
            params.append(tag)
        if action_id:
            clauses.append("action_id = ?")
            params.append(action_id)
        where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
        sql = (
            f"SELECT id, session_id, timestamp, tag, message, action_id "
            f"FROM log_entries {where} "
            f"ORDER BY id DESC LIMIT ?"
        )
        params.append(limit)
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(sql, params).fetchall()
        return [dict(r) for r in reversed(rows)]

    def get_sessions(self, limit: int = 50) -> list:
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT id, started_at, backend FROM sessions "
                "ORDER BY started_at DESC LIMIT ?",
                (limit,)
            ).fetchall()
        return [dict(r) for r in rows]

    def flush(self):
        """Block until every queued entry has been written."""
        self._queue.join()

    @property
    def session_id(self) -> str:
        return self._session

    @property
    def db_path(self) -> str:
        return self._db_path

    def stop(self):
        self._queue.put(None)
        self._writer.join(timeout=3)
        self._stop_evt.set()
