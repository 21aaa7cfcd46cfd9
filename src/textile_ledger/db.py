from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Any

from textile_ledger.dates import utc_now_iso
from textile_ledger.errors import StorageError
from textile_ledger.paths import default_db_path

KV_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key          TEXT PRIMARY KEY,
    value        TEXT NOT NULL,
    updated_utc  TEXT NOT NULL
)
"""


@dataclass
class DB:
    """One SQLite file; a fresh connection per statement, committed on success."""

    path: Path
    timeout: float = 5.0

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path, timeout=self.timeout)

    def scalar(self, sql: str, params: Optional[Iterable[Any]] = None) -> Any:
        with self.connect() as con:
            row = con.execute(sql, list(params or [])).fetchone()
            return None if row is None else row[0]

    def execute(self, sql: str, params: Optional[Iterable[Any]] = None) -> int:
        try:
            with self.connect() as con:
                cur = con.execute(sql, list(params or []))
                con.commit()
                return cur.rowcount
        except sqlite3.Error as e:
            raise StorageError(f"Could not write to {self.path.name}: {e}") from e


def get_db(db_path: Optional[Path] = None) -> DB:
    return DB(path=db_path or default_db_path())


class KeyValueStore:
    """String key -> string value table, the ledger's only persistent state.

    Each write is a single committed upsert, so a reader never observes a
    half-written value.
    """

    def __init__(self, db: DB):
        self.db = db
        self.db.execute(KV_SCHEMA)

    def get(self, key: str) -> str | None:
        return self.db.scalar("SELECT value FROM kv WHERE key = ?", [key])

    def set(self, key: str, value: str) -> None:
        self.db.execute(
            """
            INSERT INTO kv (key, value, updated_utc)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value=excluded.value,
                updated_utc=excluded.updated_utc
            """,
            [key, value, utc_now_iso()],
        )
