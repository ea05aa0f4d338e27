"""SQLite-backed durable tier for cached search results."""
from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .cache import CacheEntry

logger = logging.getLogger(__name__)

JOURNAL_MODES = ("delete", "truncate", "persist", "memory", "wal", "off")
SYNCHRONOUS_MODES = ("off", "normal", "full", "extra")

# Applied in order; ``PRAGMA user_version`` holds how many have run.
MIGRATIONS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS search_cache (
        cache_key TEXT PRIMARY KEY,
        payload_json TEXT NOT NULL,
        summary TEXT,
        hotel_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_search_cache_created_at ON search_cache(created_at);
    """,
)

_SELECT_ENTRY = "SELECT cache_key, payload_json, summary, created_at FROM search_cache WHERE cache_key=?"
_UPSERT_ENTRY = """
    INSERT INTO search_cache(cache_key, payload_json, summary, hotel_count, created_at)
    VALUES(?, ?, ?, ?, ?)
    ON CONFLICT(cache_key) DO UPDATE SET
        payload_json=excluded.payload_json,
        summary=excluded.summary,
        hotel_count=excluded.hotel_count,
        created_at=excluded.created_at
"""


def _utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _pragma_choice(name: str, value: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    choice = (value or "").strip().lower()
    if not choice:
        return None
    if choice not in allowed:
        raise ValueError(f"Unsupported SQLite {name} '{value}'; expected one of {', '.join(allowed)}")
    return choice


class SqliteCacheStore:
    """One row per cache key; sqlite3 calls run in a worker thread, one at a time."""

    name = "sqlite"

    def __init__(
        self,
        db_path: Path,
        *,
        journal_mode: Optional[str] = "wal",
        synchronous: Optional[str] = "normal",
    ) -> None:
        self._path = Path(db_path)
        self._pragmas = {
            "journal_mode": _pragma_choice("journal_mode", journal_mode, JOURNAL_MODES),
            "synchronous": _pragma_choice("synchronous", synchronous, SYNCHRONOUS_MODES),
        }
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        async with self._lock:
            if self._conn is None:
                self._conn = await asyncio.to_thread(self._connect)

    async def close(self) -> None:
        async with self._lock:
            conn, self._conn = self._conn, None
            if conn is not None:
                await asyncio.to_thread(conn.close)

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        try:
            for pragma, choice in self._pragmas.items():
                if choice:
                    conn.execute(f"PRAGMA {pragma} = {choice.upper()}")
            self._migrate(conn)
        except sqlite3.Error:
            conn.close()
            logger.exception("Could not prepare SQLite cache at %s", self._path)
            raise
        return conn

    @staticmethod
    def _migrate(conn: sqlite3.Connection) -> None:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        for index, script in enumerate(MIGRATIONS[version:], start=version + 1):
            conn.executescript(script)
            conn.execute(f"PRAGMA user_version = {index}")
            logger.info("SQLite cache schema migrated to version %s", index)
        conn.commit()

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLite cache store has not been initialised")
        return self._conn

    async def _run(self, operation):
        async with self._lock:
            conn = self._require_connection()
            return await asyncio.to_thread(operation, conn)

    async def get(self, key: str) -> Optional[CacheEntry]:
        def _load(conn: sqlite3.Connection) -> Optional[CacheEntry]:
            row = conn.execute(_SELECT_ENTRY, (key,)).fetchone()
            if row is None:
                return None
            cache_key, payload_json, summary, created_at = row
            return CacheEntry.from_dict(
                {
                    "cache_key": cache_key,
                    "payload": json.loads(payload_json),
                    "summary": summary,
                    "created_at": created_at,
                }
            )

        return await self._run(_load)

    async def put(self, entry: CacheEntry) -> None:
        payload_json = json.dumps(entry.to_dict()["payload"], separators=(",", ":"), default=str)
        row = (entry.cache_key, payload_json, entry.summary, len(entry.payload), _utc_iso(entry.created_at))

        def _store(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(_UPSERT_ENTRY, row)

        await self._run(_store)

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Delete entries created before ``cutoff`` and return how many were removed."""

        def _purge(conn: sqlite3.Connection) -> int:
            with conn:
                return conn.execute("DELETE FROM search_cache WHERE created_at < ?", (_utc_iso(cutoff),)).rowcount

        removed = await self._run(_purge)
        if removed:
            logger.info("Purged %s expired cache rows from %s", removed, self._path)
        return removed
