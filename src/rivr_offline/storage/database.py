"""
SQLite cache database with safe connection handling.

One database file holds every local table: the generic key-value cache, the
HTTP response cache, file/tile metadata, cached stations, forecasts and
return periods, downloaded map regions, favorites and notification history.

Timestamps are integer epoch milliseconds. Blob columns (``file_path``)
store paths relative to the ``BlobStore`` base directory.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rivr_offline.errors import DatabaseError

logger = logging.getLogger(__name__)

# Table names
TABLE_CACHE = "cache_entries"
TABLE_NETWORK_CACHE = "network_cache"
TABLE_FILE_CACHE = "file_cache"
TABLE_STATIONS = "stations"
TABLE_FORECASTS = "forecasts"
TABLE_RETURN_PERIODS = "return_periods"
TABLE_MAP_TILES = "map_tiles"
TABLE_MAP_REGIONS = "map_regions"
TABLE_FAVORITES = "favorites"
TABLE_NOTIFICATIONS = "notification_history"

ALL_TABLES = (
    TABLE_CACHE,
    TABLE_NETWORK_CACHE,
    TABLE_FILE_CACHE,
    TABLE_STATIONS,
    TABLE_FORECASTS,
    TABLE_RETURN_PERIODS,
    TABLE_MAP_TILES,
    TABLE_MAP_REGIONS,
    TABLE_FAVORITES,
    TABLE_NOTIFICATIONS,
)

SCHEMA_VERSION = 1

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE_CACHE} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL,
    metadata TEXT
);

CREATE TABLE IF NOT EXISTS {TABLE_NETWORK_CACHE} (
    url TEXT PRIMARY KEY,
    method TEXT NOT NULL,
    headers TEXT,
    body TEXT,
    status_code INTEGER,
    response_body TEXT,
    response_headers TEXT,
    created_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS {TABLE_FILE_CACHE} (
    key TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    size INTEGER NOT NULL,
    mime_type TEXT,
    created_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL,
    last_accessed INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS {TABLE_STATIONS} (
    station_id INTEGER PRIMARY KEY,
    name TEXT,
    lat REAL,
    lon REAL,
    elevation REAL,
    type TEXT,
    description TEXT,
    color TEXT,
    api_data TEXT,
    cached_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS {TABLE_FORECASTS} (
    reach_id TEXT NOT NULL,
    forecast_type TEXT NOT NULL,
    data TEXT NOT NULL,
    cached_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL,
    PRIMARY KEY (reach_id, forecast_type)
);

CREATE TABLE IF NOT EXISTS {TABLE_RETURN_PERIODS} (
    reach_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    unit TEXT NOT NULL,
    cached_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS {TABLE_MAP_TILES} (
    tile_key TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    size INTEGER NOT NULL DEFAULT 0,
    last_accessed INTEGER NOT NULL,
    expires_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS {TABLE_MAP_REGIONS} (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    min_lat REAL NOT NULL,
    max_lat REAL NOT NULL,
    min_lon REAL NOT NULL,
    max_lon REAL NOT NULL,
    min_zoom INTEGER NOT NULL,
    max_zoom INTEGER NOT NULL,
    style_url TEXT NOT NULL,
    downloaded_at INTEGER NOT NULL,
    tile_count INTEGER,
    size_bytes INTEGER
);

CREATE TABLE IF NOT EXISTS {TABLE_FAVORITES} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    station_id TEXT NOT NULL,
    name TEXT NOT NULL,
    user_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    color TEXT,
    description TEXT,
    img_number INTEGER,
    last_updated INTEGER NOT NULL,
    original_api_name TEXT,
    custom_image_path TEXT,
    UNIQUE (station_id, user_id)
);

CREATE TABLE IF NOT EXISTS {TABLE_NOTIFICATIONS} (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    reach_id TEXT NOT NULL,
    notification_type TEXT NOT NULL,
    flow_value REAL NOT NULL,
    flow_unit TEXT NOT NULL,
    category TEXT NOT NULL,
    message TEXT NOT NULL,
    delivery_status TEXT NOT NULL,
    delivery_method TEXT NOT NULL,
    triggered_by TEXT NOT NULL,
    sent_at INTEGER NOT NULL,
    read_at INTEGER,
    error_message TEXT
);

CREATE INDEX IF NOT EXISTS idx_forecasts_expires ON {TABLE_FORECASTS} (expires_at);
CREATE INDEX IF NOT EXISTS idx_tiles_accessed ON {TABLE_MAP_TILES} (last_accessed);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON {TABLE_NOTIFICATIONS} (user_id, sent_at);
"""

# version -> statements that upgrade the previous version to it
MIGRATIONS: dict[int, list[str]] = {}


class CacheDatabase:
    """Manages the SQLite cache database and its schema."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection, commit on success, roll back and re-raise on error.

        Example::

            with db.connection() as conn:
                conn.execute("DELETE FROM cache_entries")
        """
        self._ensure_schema()
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, args: Sequence[Any] = ()) -> int:
        """Run a write statement. Returns the affected row count."""
        try:
            with self.connection() as conn:
                return conn.execute(sql, args).rowcount
        except sqlite3.Error as e:
            raise DatabaseError(f"Database write failed: {e}", original_error=e) from e

    def query(self, sql: str, args: Sequence[Any] = ()) -> list[sqlite3.Row]:
        try:
            with self.connection() as conn:
                return conn.execute(sql, args).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Database query failed: {e}", original_error=e) from e

    def query_one(self, sql: str, args: Sequence[Any] = ()) -> sqlite3.Row | None:
        rows = self.query(sql, args)
        return rows[0] if rows else None

    def count(self, table: str, where: str | None = None, args: Sequence[Any] = ()) -> int:
        sql = f"SELECT COUNT(*) FROM {table}"  # noqa: S608
        if where:
            sql += f" WHERE {where}"
        row = self.query_one(sql, args)
        return int(row[0]) if row else 0

    def table_exists(self, name: str) -> bool:
        row = self.query_one(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        return row is not None

    def file_size(self) -> int:
        """Size of the database file on disk (0 before first write)."""
        return self.path.stat().st_size if self.path.exists() else 0

    def schema_version(self) -> int:
        with self.connection() as conn:
            return int(conn.execute("PRAGMA user_version").fetchone()[0])

    def clear_tables(self, tables: Sequence[str] = ALL_TABLES) -> None:
        with self.connection() as conn:
            for table in tables:
                conn.execute(f"DELETE FROM {table}")  # noqa: S608

    def vacuum(self) -> None:
        """Rebuild the file so deleted rows actually release disk space."""
        self._ensure_schema()
        conn = self._connect()
        try:
            conn.isolation_level = None
            conn.execute("VACUUM")
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:
        if self._initialized:
            return
        conn = self._connect()
        try:
            version = int(conn.execute("PRAGMA user_version").fetchone()[0])
            if version == 0:
                conn.executescript(SCHEMA)
                logger.info("Cache database created at %s", self.path)
            else:
                for target in range(version + 1, SCHEMA_VERSION + 1):
                    for statement in MIGRATIONS.get(target, []):
                        conn.execute(statement)
                    logger.info("Cache database migrated to version %d", target)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()
        finally:
            conn.close()
        self._initialized = True
