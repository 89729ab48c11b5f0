"""
Offline storage for stations, forecasts, return periods and map tiles.

Each kind of data has its own table with one row per key (replace on
conflict). Forecasts and tiles carry ``expires_at``; stations and return
periods only record when they were cached and are judged stale by callers.

``perform_cache_cleanup()`` keeps the whole cache (database file plus blob
directory) under a size budget:

  1. delete expired tiles and forecasts
  2. evict least-recently-accessed tiles, 100 at a time
  3. evict oldest forecasts, 10 at a time
  4. evict oldest map regions, 5 at a time

stopping as soon as the cache fits.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rivr_offline.clock import MS_PER_DAY, MS_PER_HOUR, Clock, system_clock
from rivr_offline.schemas import BoundingBox, CacheStats, FlowUnit, ForecastType, MapRegion, MapStation
from rivr_offline.storage.database import (
    TABLE_FORECASTS,
    TABLE_MAP_REGIONS,
    TABLE_MAP_TILES,
    TABLE_RETURN_PERIODS,
    TABLE_STATIONS,
    CacheDatabase,
)
from rivr_offline.store import TILES_DIR, BlobStore

logger = logging.getLogger(__name__)

UNTITLED_STREAM = "Untitled Stream"
DEFAULT_TILE_EXPIRY_DAYS = 30
DEFAULT_MAX_CACHE_SIZE_MB = 100

TILE_EVICTION_BATCH = 100
FORECAST_EVICTION_BATCH = 10
REGION_EVICTION_BATCH = 5

CACHE_TYPES = ("stations", "forecasts", "return_periods", "map_tiles", "all")


@dataclass
class CachedStation:
    station: MapStation
    api_data: dict[str, Any] | None
    cached_at: int


@dataclass
class CachedForecast:
    reach_id: str
    forecast_type: ForecastType
    data: dict[str, Any]
    cached_at: int
    expires_at: int

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at <= now_ms


@dataclass
class CachedReturnPeriods:
    reach_id: str
    data: dict[str, Any]
    unit: FlowUnit
    cached_at: int


class OfflineStorageRepository:
    """Local cache of everything needed to show a river while offline."""

    def __init__(self, database: CacheDatabase, blobs: BlobStore, clock: Clock = system_clock) -> None:
        self.db = database
        self.blobs = blobs
        self.clock = clock

    # =========================================================================
    # Stations
    # =========================================================================

    def cache_station(self, station: MapStation, api_data: dict[str, Any] | None = None) -> None:
        """Cache a station and its raw API payload. Blank names become "Untitled Stream"."""
        name = station.name or UNTITLED_STREAM
        if api_data is not None and "name" in api_data and not api_data["name"]:
            api_data = {**api_data, "name": UNTITLED_STREAM}

        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_STATIONS} "  # noqa: S608
            "(station_id, name, lat, lon, elevation, type, description, color, api_data, cached_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                station.station_id,
                name,
                station.lat,
                station.lon,
                station.elevation,
                station.type,
                station.description,
                station.color,
                json.dumps(api_data) if api_data is not None else None,
                self.clock(),
            ),
        )

    def get_cached_station(self, station_id: int) -> CachedStation | None:
        row = self.db.query_one(
            f"SELECT * FROM {TABLE_STATIONS} WHERE station_id = ?",  # noqa: S608
            (station_id,),
        )
        return _station_from_row(row) if row else None

    def get_station_api_data(self, station_id: int) -> dict[str, Any] | None:
        cached = self.get_cached_station(station_id)
        return cached.api_data if cached else None

    def get_all_cached_stations(self) -> list[CachedStation]:
        """All cached stations, most recently cached first."""
        rows = self.db.query(f"SELECT * FROM {TABLE_STATIONS} ORDER BY cached_at DESC")  # noqa: S608
        return [_station_from_row(r) for r in rows]

    def get_station_name(self, station_id: int, fallback: str = UNTITLED_STREAM) -> str:
        """Best known name: API payload name, then cached row name, then ``fallback``."""
        cached = self.get_cached_station(station_id)
        if cached is None:
            return fallback
        if cached.api_data and cached.api_data.get("name"):
            return str(cached.api_data["name"])
        return cached.station.name or fallback

    def update_station_name(self, station_id: int, name: str) -> bool:
        """Rename a cached station (row and API payload). False if not cached."""
        cached = self.get_cached_station(station_id)
        if cached is None:
            logger.info("No cached station found for ID %s", station_id)
            return False

        api_data = cached.api_data
        if api_data is not None:
            api_data = {**api_data, "name": name}
        self.db.execute(
            f"UPDATE {TABLE_STATIONS} SET name = ?, api_data = ? WHERE station_id = ?",  # noqa: S608
            (name, json.dumps(api_data) if api_data is not None else None, station_id),
        )
        return True

    # =========================================================================
    # Forecasts
    # =========================================================================

    def cache_forecast(
        self,
        reach_id: str,
        data: dict[str, Any],
        forecast_type: ForecastType = ForecastType.SHORT_RANGE,
        expiry_hours: float | None = None,
    ) -> None:
        """Cache a raw forecast payload, replacing any earlier one for the same series."""
        now = self.clock()
        hours = expiry_hours if expiry_hours is not None else forecast_type.cache_hours
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_FORECASTS} "  # noqa: S608
            "(reach_id, forecast_type, data, cached_at, expires_at) VALUES (?, ?, ?, ?, ?)",
            (str(reach_id), forecast_type.value, json.dumps(data), now, now + int(hours * MS_PER_HOUR)),
        )

    def get_cached_forecast(
        self,
        reach_id: str,
        forecast_type: ForecastType = ForecastType.SHORT_RANGE,
        *,
        ignore_expiry: bool = False,
    ) -> CachedForecast | None:
        sql = f"SELECT * FROM {TABLE_FORECASTS} WHERE reach_id = ? AND forecast_type = ?"  # noqa: S608
        args: list[Any] = [str(reach_id), forecast_type.value]
        if not ignore_expiry:
            sql += " AND expires_at > ?"
            args.append(self.clock())

        row = self.db.query_one(sql, args)
        if row is None:
            return None
        try:
            data = json.loads(row["data"])
        except json.JSONDecodeError:
            logger.warning("Error decoding cached forecast for %s (%s)", reach_id, forecast_type)
            return None
        return CachedForecast(
            reach_id=row["reach_id"],
            forecast_type=ForecastType(row["forecast_type"]),
            data=data,
            cached_at=row["cached_at"],
            expires_at=row["expires_at"],
        )

    def is_forecast_stale(self, reach_id: str, forecast_type: ForecastType) -> bool:
        """True when there is no unexpired forecast for this series."""
        return self.get_cached_forecast(reach_id, forecast_type) is None

    def delete_expired_forecasts(self) -> int:
        return self.db.execute(
            f"DELETE FROM {TABLE_FORECASTS} WHERE expires_at < ?",  # noqa: S608
            (self.clock(),),
        )

    # =========================================================================
    # Return periods
    # =========================================================================

    def cache_return_periods(
        self, reach_id: str, data: dict[str, Any], unit: FlowUnit = FlowUnit.CMS
    ) -> None:
        """Cache a return-period payload. Values are stored in ``unit`` (API returns CMS)."""
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_RETURN_PERIODS} "  # noqa: S608
            "(reach_id, data, unit, cached_at) VALUES (?, ?, ?, ?)",
            (str(reach_id), json.dumps({**data, "unit": unit.value}), unit.value, self.clock()),
        )

    def get_cached_return_periods(self, reach_id: str) -> CachedReturnPeriods | None:
        row = self.db.query_one(
            f"SELECT * FROM {TABLE_RETURN_PERIODS} WHERE reach_id = ?",  # noqa: S608
            (str(reach_id),),
        )
        if row is None:
            return None
        try:
            data = json.loads(row["data"])
        except json.JSONDecodeError:
            logger.warning("Error decoding cached return periods for %s", reach_id)
            return None
        # Rows written before the unit was recorded are in CMS
        data.setdefault("unit", FlowUnit.CMS.value)
        return CachedReturnPeriods(
            reach_id=row["reach_id"],
            data=data,
            unit=FlowUnit(row["unit"] or data["unit"]),
            cached_at=row["cached_at"],
        )

    # =========================================================================
    # Map tiles
    # =========================================================================

    def cache_map_tile(
        self, tile_key: str, data: bytes, expiry_days: float = DEFAULT_TILE_EXPIRY_DAYS
    ) -> None:
        now = self.clock()
        rel_path = Path(TILES_DIR) / f"{tile_key}.tile"
        self.blobs.write(rel_path, data)
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_MAP_TILES} "  # noqa: S608
            "(tile_key, file_path, size, last_accessed, expires_at) VALUES (?, ?, ?, ?, ?)",
            (tile_key, str(rel_path), len(data), now, now + int(expiry_days * MS_PER_DAY)),
        )

    def get_cached_map_tile(self, tile_key: str, *, update_last_accessed: bool = True) -> bytes | None:
        """Tile bytes, or None if unknown, expired, or the file has gone missing."""
        row = self.db.query_one(
            f"SELECT * FROM {TABLE_MAP_TILES} WHERE tile_key = ?",  # noqa: S608
            (tile_key,),
        )
        if row is None:
            return None

        now = self.clock()
        if now > row["expires_at"]:
            return None

        data = self.blobs.read(Path(row["file_path"]))
        if data is None:
            self.db.execute(f"DELETE FROM {TABLE_MAP_TILES} WHERE tile_key = ?", (tile_key,))  # noqa: S608
            return None

        if update_last_accessed:
            self.db.execute(
                f"UPDATE {TABLE_MAP_TILES} SET last_accessed = ? WHERE tile_key = ?",  # noqa: S608
                (now, tile_key),
            )
        return data

    def delete_map_tile(self, tile_key: str) -> int:
        """Remove one tile. Returns bytes freed on disk."""
        row = self.db.query_one(
            f"SELECT file_path FROM {TABLE_MAP_TILES} WHERE tile_key = ?",  # noqa: S608
            (tile_key,),
        )
        if row is None:
            return 0
        freed = self.blobs.delete(Path(row["file_path"]))
        self.db.execute(f"DELETE FROM {TABLE_MAP_TILES} WHERE tile_key = ?", (tile_key,))  # noqa: S608
        return freed

    def delete_expired_tiles(self) -> int:
        rows = self.db.query(
            f"SELECT tile_key, file_path FROM {TABLE_MAP_TILES} WHERE expires_at < ?",  # noqa: S608
            (self.clock(),),
        )
        self._delete_tiles(rows)
        return len(rows)

    def _delete_tiles(self, rows: list[Any]) -> None:
        for row in rows:
            self.blobs.delete(Path(row["file_path"]))
            self.db.execute(
                f"DELETE FROM {TABLE_MAP_TILES} WHERE tile_key = ?",  # noqa: S608
                (row["tile_key"],),
            )

    # =========================================================================
    # Map regions
    # =========================================================================

    def save_map_region(self, region: MapRegion) -> None:
        b = region.bounds
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_MAP_REGIONS} "  # noqa: S608
            "(id, name, min_lat, max_lat, min_lon, max_lon, min_zoom, max_zoom, style_url, "
            "downloaded_at, tile_count, size_bytes) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                region.id,
                region.name,
                b.south,
                b.north,
                b.west,
                b.east,
                region.min_zoom,
                region.max_zoom,
                region.style_url,
                region.downloaded_at,
                region.tile_count,
                region.size_bytes,
            ),
        )

    def get_map_regions(self) -> list[MapRegion]:
        rows = self.db.query(f"SELECT * FROM {TABLE_MAP_REGIONS} ORDER BY downloaded_at DESC")  # noqa: S608
        return [
            MapRegion(
                id=r["id"],
                name=r["name"],
                bounds=BoundingBox(
                    south=r["min_lat"], west=r["min_lon"], north=r["max_lat"], east=r["max_lon"]
                ),
                min_zoom=r["min_zoom"],
                max_zoom=r["max_zoom"],
                style_url=r["style_url"],
                downloaded_at=r["downloaded_at"],
                tile_count=r["tile_count"] or 0,
                size_bytes=r["size_bytes"] or 0,
            )
            for r in rows
        ]

    def delete_map_region(self, region_id: str) -> bool:
        return self.db.execute(f"DELETE FROM {TABLE_MAP_REGIONS} WHERE id = ?", (region_id,)) > 0  # noqa: S608

    # =========================================================================
    # Size budget / stats
    # =========================================================================

    def cache_size_bytes(self) -> int:
        """Database file plus every blob on disk."""
        return self.db.file_size() + self.blobs.total_size()

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(
            station_count=self.db.count(TABLE_STATIONS),
            forecast_count=self.db.count(TABLE_FORECASTS),
            return_period_count=self.db.count(TABLE_RETURN_PERIODS),
            tile_count=self.db.count(TABLE_MAP_TILES),
            region_count=self.db.count(TABLE_MAP_REGIONS),
            size_bytes=self.cache_size_bytes(),
        )

    def perform_cache_cleanup(self, max_cache_size_mb: float = DEFAULT_MAX_CACHE_SIZE_MB) -> CacheStats:
        """Drop expired data, then evict oldest data until the cache fits the budget."""
        budget = int(max_cache_size_mb * 1024 * 1024)

        expired_tiles = self.delete_expired_tiles()
        expired_forecasts = self.delete_expired_forecasts()
        if expired_tiles or expired_forecasts:
            logger.info(
                "Cleanup removed %d expired tiles and %d expired forecasts",
                expired_tiles,
                expired_forecasts,
            )
            self.db.vacuum()

        if self.cache_size_bytes() > budget:
            self._evict_tiles(budget)
        if self.cache_size_bytes() > budget:
            self._evict_oldest(TABLE_FORECASTS, "cached_at", ("reach_id", "forecast_type"), FORECAST_EVICTION_BATCH, budget)
        if self.cache_size_bytes() > budget:
            self._evict_oldest(TABLE_MAP_REGIONS, "downloaded_at", ("id",), REGION_EVICTION_BATCH, budget)

        return self.get_cache_stats()

    def _evict_tiles(self, budget: int) -> None:
        evicted = 0
        size = self.cache_size_bytes()
        while size > budget:
            rows = self.db.query(
                f"SELECT tile_key, file_path, size FROM {TABLE_MAP_TILES} "  # noqa: S608
                "ORDER BY last_accessed ASC LIMIT ?",
                (TILE_EVICTION_BATCH,),
            )
            if not rows:
                break
            for row in rows:
                size -= self.blobs.delete(Path(row["file_path"]))
                self.db.execute(
                    f"DELETE FROM {TABLE_MAP_TILES} WHERE tile_key = ?",  # noqa: S608
                    (row["tile_key"],),
                )
                evicted += 1
                if size <= budget:
                    break
            size = self.cache_size_bytes()
        logger.info("Evicted %d least recently used tiles", evicted)

    def _evict_oldest(
        self, table: str, order_column: str, key_columns: tuple[str, ...], batch: int, budget: int
    ) -> None:
        where = " AND ".join(f"{c} = ?" for c in key_columns)
        while self.cache_size_bytes() > budget:
            rows = self.db.query(
                f"SELECT {', '.join(key_columns)} FROM {table} "  # noqa: S608
                f"ORDER BY {order_column} ASC LIMIT ?",
                (batch,),
            )
            if not rows:
                break
            for row in rows:
                self.db.execute(f"DELETE FROM {table} WHERE {where}", tuple(row))  # noqa: S608
            self.db.vacuum()
            logger.info("Evicted %d oldest rows from %s", len(rows), table)

    # =========================================================================
    # Clearing
    # =========================================================================

    def clear_all_cache(self) -> None:
        self.db.clear_tables(
            (TABLE_STATIONS, TABLE_FORECASTS, TABLE_RETURN_PERIODS, TABLE_MAP_TILES, TABLE_MAP_REGIONS)
        )
        self.blobs.clear(TILES_DIR)

    def clear_cache_by_type(self, cache_type: str) -> None:
        """Clear one kind of cached data (``stations``, ``forecasts``, ``return_periods``, ``map_tiles`` or ``all``)."""
        if cache_type == "stations":
            self.db.clear_tables((TABLE_STATIONS,))
        elif cache_type == "forecasts":
            self.db.clear_tables((TABLE_FORECASTS,))
        elif cache_type == "return_periods":
            self.db.clear_tables((TABLE_RETURN_PERIODS,))
        elif cache_type == "map_tiles":
            self.db.clear_tables((TABLE_MAP_TILES, TABLE_MAP_REGIONS))
            self.blobs.clear(TILES_DIR)
        elif cache_type == "all":
            self.clear_all_cache()
        else:
            msg = f"Unknown cache type: {cache_type}"
            raise ValueError(msg)


def _station_from_row(row: Any) -> CachedStation:
    api_data = None
    if row["api_data"]:
        try:
            api_data = json.loads(row["api_data"])
        except json.JSONDecodeError:
            logger.warning("Error decoding API data for station %s", row["station_id"])
    return CachedStation(
        station=MapStation(
            station_id=row["station_id"],
            lat=row["lat"],
            lon=row["lon"],
            elevation=row["elevation"],
            name=row["name"],
            type=row["type"],
            description=row["description"],
            color=row["color"],
        ),
        api_data=api_data,
        cached_at=row["cached_at"],
    )
