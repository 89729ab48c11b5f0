"""
Generic TTL cache over the cache database.

Two stores:
  - key/value: any JSON-serializable value in ``cache_entries``
  - files: arbitrary bytes in the blob store, metadata in ``file_cache``

Entries past ``expires_at`` are invisible to ``get``/``exists``/``get_file``
but stay on disk until ``clean_expired()`` or ``enforce_size_limit()`` runs.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

from rivr_offline.clock import Clock, system_clock
from rivr_offline.storage.database import TABLE_CACHE, TABLE_FILE_CACHE, TABLE_NETWORK_CACHE, CacheDatabase
from rivr_offline.store import FILES_DIR, BlobStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=1)
DEFAULT_FILE_TTL = timedelta(days=7)


def _ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


@dataclass
class CacheEntry:
    """A decoded cache row."""

    key: str
    value: Any
    created_at: int
    expires_at: int
    metadata: dict[str, Any] | None = None

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at <= now_ms


class CacheService:
    """TTL key-value and file cache."""

    def __init__(self, database: CacheDatabase, blobs: BlobStore, clock: Clock = system_clock) -> None:
        self.db = database
        self.blobs = blobs
        self.clock = clock

    # -------------------------------------------------------------------------
    # Key / value
    # -------------------------------------------------------------------------

    def get(self, key: str, *, update_access_time: bool = True) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self.get_entry(key, update_access_time=update_access_time)
        return entry.value if entry else None

    def get_entry(
        self,
        key: str,
        *,
        ignore_expiry: bool = False,
        update_access_time: bool = True,
    ) -> CacheEntry | None:
        """
        Return the full entry with timestamps.

        With ``ignore_expiry`` an expired entry is still returned (stale read
        for offline fallback). Rows whose JSON cannot be decoded are deleted.
        """
        now = self.clock()
        if ignore_expiry:
            row = self.db.query_one(f"SELECT * FROM {TABLE_CACHE} WHERE key = ?", (key,))  # noqa: S608
        else:
            row = self.db.query_one(
                f"SELECT * FROM {TABLE_CACHE} WHERE key = ? AND expires_at > ?",  # noqa: S608
                (key, now),
            )
        if row is None:
            return None

        try:
            value = json.loads(row["value"])
            metadata = json.loads(row["metadata"]) if row["metadata"] else None
        except json.JSONDecodeError:
            logger.warning("Dropping undecodable cache entry %s", key)
            self.remove(key)
            return None

        if update_access_time:
            self.db.execute(
                f"UPDATE {TABLE_CACHE} SET created_at = ? WHERE key = ?",  # noqa: S608
                (now, key),
            )

        return CacheEntry(
            key=key,
            value=value,
            created_at=now if update_access_time else row["created_at"],
            expires_at=row["expires_at"],
            metadata=metadata,
        )

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: timedelta = DEFAULT_TTL,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace ``key``; it expires ``ttl`` from now."""
        now = self.clock()
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_CACHE} "  # noqa: S608
            "(key, value, created_at, expires_at, metadata) VALUES (?, ?, ?, ?, ?)",
            (
                key,
                json.dumps(value),
                now,
                now + _ms(ttl),
                json.dumps(metadata) if metadata is not None else None,
            ),
        )

    def exists(self, key: str) -> bool:
        return (
            self.db.count(TABLE_CACHE, "key = ? AND expires_at > ?", (key, self.clock())) > 0
        )

    def remove(self, key: str) -> None:
        self.db.execute(f"DELETE FROM {TABLE_CACHE} WHERE key = ?", (key,))  # noqa: S608

    def keys(self, prefix: str = "") -> list[str]:
        rows = self.db.query(
            f"SELECT key FROM {TABLE_CACHE} WHERE key LIKE ? ORDER BY key",  # noqa: S608
            (prefix + "%",),
        )
        return [r["key"] for r in rows]

    def count(self, prefix: str = "") -> int:
        return self.db.count(TABLE_CACHE, "key LIKE ?", (prefix + "%",))

    def remove_prefix(self, prefix: str) -> int:
        return self.db.execute(
            f"DELETE FROM {TABLE_CACHE} WHERE key LIKE ?",  # noqa: S608
            (prefix + "%",),
        )

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def cache_file(
        self,
        key: str,
        data: bytes,
        *,
        ttl: timedelta = DEFAULT_FILE_TTL,
        mime_type: str | None = None,
    ) -> Path:
        """Write ``data`` to the blob store and record it under ``key``."""
        now = self.clock()
        previous = self.db.query_one(
            f"SELECT file_path FROM {TABLE_FILE_CACHE} WHERE key = ?",  # noqa: S608
            (key,),
        )
        rel_path = Path(FILES_DIR) / f"{_safe_name(key)}-{now}"
        full = self.blobs.write(rel_path, data)
        if previous is not None and previous["file_path"] != str(rel_path):
            self.blobs.delete(Path(previous["file_path"]))

        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_FILE_CACHE} "  # noqa: S608
            "(key, file_path, size, mime_type, created_at, expires_at, last_accessed) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (key, str(rel_path), len(data), mime_type, now, now + _ms(ttl), now),
        )
        return full

    def get_file(self, key: str, *, update_access_time: bool = True) -> bytes | None:
        """Return cached bytes, or None if missing, expired, or the blob is gone."""
        now = self.clock()
        row = self.db.query_one(
            f"SELECT file_path FROM {TABLE_FILE_CACHE} WHERE key = ? AND expires_at > ?",  # noqa: S608
            (key, now),
        )
        if row is None:
            return None

        data = self.blobs.read(Path(row["file_path"]))
        if data is None:
            # Metadata without a file: drop the orphaned row
            self.db.execute(f"DELETE FROM {TABLE_FILE_CACHE} WHERE key = ?", (key,))  # noqa: S608
            return None

        if update_access_time:
            self.db.execute(
                f"UPDATE {TABLE_FILE_CACHE} SET last_accessed = ? WHERE key = ?",  # noqa: S608
                (now, key),
            )
        return data

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def clean_expired(self) -> int:
        """Delete expired entries from every TTL table. Returns rows deleted."""
        now = self.clock()
        deleted = self.db.execute(f"DELETE FROM {TABLE_CACHE} WHERE expires_at < ?", (now,))  # noqa: S608
        deleted += self.db.execute(
            f"DELETE FROM {TABLE_NETWORK_CACHE} WHERE expires_at < ?",  # noqa: S608
            (now,),
        )

        expired_files = self.db.query(
            f"SELECT file_path FROM {TABLE_FILE_CACHE} WHERE expires_at < ?",  # noqa: S608
            (now,),
        )
        for row in expired_files:
            self.blobs.delete(Path(row["file_path"]))
        deleted += self.db.execute(
            f"DELETE FROM {TABLE_FILE_CACHE} WHERE expires_at < ?",  # noqa: S608
            (now,),
        )
        if deleted:
            logger.info("Removed %d expired cache entries", deleted)
        return deleted

    def clear_all(self) -> None:
        for row in self.db.query(f"SELECT file_path FROM {TABLE_FILE_CACHE}"):  # noqa: S608
            self.blobs.delete(Path(row["file_path"]))
        self.db.clear_tables((TABLE_CACHE, TABLE_NETWORK_CACHE, TABLE_FILE_CACHE))

    def size_bytes(self) -> int:
        """Bytes of cached files plus the database file itself."""
        row = self.db.query_one(f"SELECT SUM(size) AS total FROM {TABLE_FILE_CACHE}")  # noqa: S608
        files = int(row["total"]) if row and row["total"] is not None else 0
        return files + self.db.file_size()

    def enforce_size_limit(self, max_bytes: int) -> int:
        """
        Shrink the cache to ``max_bytes``.

        Expired entries go first, then cached files in least-recently-accessed
        order until the total fits. Returns the number of files evicted.
        """
        if self.size_bytes() <= max_bytes:
            return 0

        self.clean_expired()
        evicted = 0
        rows = self.db.query(
            f"SELECT key, file_path FROM {TABLE_FILE_CACHE} ORDER BY last_accessed ASC"  # noqa: S608
        )
        for row in rows:
            if self.size_bytes() <= max_bytes:
                break
            self.blobs.delete(Path(row["file_path"]))
            self.db.execute(f"DELETE FROM {TABLE_FILE_CACHE} WHERE key = ?", (row["key"],))  # noqa: S608
            evicted += 1

        logger.info("Evicted %d cached files to fit %d bytes", evicted, max_bytes)
        return evicted


def _safe_name(key: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
