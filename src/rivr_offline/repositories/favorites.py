"""A user's favorite rivers, kept in order."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from typing import TypeVar

from rivr_offline.clock import Clock, system_clock
from rivr_offline.errors import DatabaseError, DatabaseFailure
from rivr_offline.schemas import Favorite
from rivr_offline.storage.database import TABLE_FAVORITES, CacheDatabase

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COLUMNS = (
    "station_id",
    "name",
    "user_id",
    "position",
    "color",
    "description",
    "img_number",
    "last_updated",
    "original_api_name",
    "custom_image_path",
)


class FavoritesRepository:
    """CRUD over the ``favorites`` table. Methods return ``T | DatabaseFailure``."""

    def __init__(self, database: CacheDatabase, clock: Clock = system_clock) -> None:
        self.db = database
        self.clock = clock

    def get_favorites(self, user_id: str) -> list[Favorite] | DatabaseFailure:
        def run() -> list[Favorite]:
            rows = self.db.query(
                f"SELECT * FROM {TABLE_FAVORITES} WHERE user_id = ? ORDER BY position ASC",  # noqa: S608
                (user_id,),
            )
            return [Favorite(**{c: r[c] for c in _COLUMNS}) for r in rows]

        return self._guard("get favorites", run)

    def add_favorite(self, favorite: Favorite) -> Favorite | DatabaseFailure:
        """Append ``favorite`` after the user's last one (replacing an existing entry)."""

        def run() -> Favorite:
            row = self.db.query_one(
                f"SELECT MAX(position) AS max_pos FROM {TABLE_FAVORITES} WHERE user_id = ?",  # noqa: S608
                (favorite.user_id,),
            )
            max_pos = row["max_pos"] if row and row["max_pos"] is not None else -1
            stored = favorite.model_copy(update={"position": max_pos + 1, "last_updated": self.clock()})
            self.db.execute(
                f"INSERT OR REPLACE INTO {TABLE_FAVORITES} ({', '.join(_COLUMNS)}) "  # noqa: S608
                f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
                tuple(getattr(stored, c) for c in _COLUMNS),
            )
            return stored

        return self._guard("add favorite", run)

    def remove_favorite(self, user_id: str, station_id: str) -> bool | DatabaseFailure:
        def run() -> bool:
            deleted = self.db.execute(
                f"DELETE FROM {TABLE_FAVORITES} WHERE user_id = ? AND station_id = ?",  # noqa: S608
                (user_id, station_id),
            )
            return deleted > 0

        return self._guard("remove favorite", run)

    def update_favorite_position(self, user_id: str, station_id: str, position: int) -> bool | DatabaseFailure:
        def run() -> bool:
            updated = self.db.execute(
                f"UPDATE {TABLE_FAVORITES} SET position = ?, last_updated = ? "  # noqa: S608
                "WHERE user_id = ? AND station_id = ?",
                (position, self.clock(), user_id, station_id),
            )
            return updated > 0

        return self._guard("update favorite position", run)

    def reorder_favorites(self, user_id: str, station_ids: list[str]) -> bool | DatabaseFailure:
        """Renumber positions to follow ``station_ids`` (in one transaction)."""

        def run() -> bool:
            now = self.clock()
            with self.db.connection() as conn:
                for position, station_id in enumerate(station_ids):
                    conn.execute(
                        f"UPDATE {TABLE_FAVORITES} SET position = ?, last_updated = ? "  # noqa: S608
                        "WHERE user_id = ? AND station_id = ?",
                        (position, now, user_id, station_id),
                    )
            return True

        return self._guard("reorder favorites", run)

    def is_favorite(self, user_id: str, station_id: str) -> bool | DatabaseFailure:
        return self._guard(
            "check favorite status",
            lambda: self.db.count(TABLE_FAVORITES, "user_id = ? AND station_id = ?", (user_id, station_id)) > 0,
        )

    def _guard(self, action: str, fn: Callable[[], T]) -> T | DatabaseFailure:
        try:
            return fn()
        except DatabaseError as e:
            logger.error("Failed to %s: %s", action, e.message)
            return DatabaseFailure(f"Failed to {action}: {e.message}")
        except sqlite3.Error as e:
            logger.error("Failed to %s: %s", action, e)
            return DatabaseFailure(f"Failed to {action}: {e}")
